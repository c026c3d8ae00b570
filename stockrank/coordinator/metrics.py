"""
Performance metrics collection for MapReduce jobs.
"""

import glob
import json
import os
import time
from dataclasses import dataclass, asdict
from typing import Dict, Optional

import psutil


def _total_size(paths) -> int:
    return sum(os.path.getsize(p) for p in paths if os.path.exists(p))


@dataclass
class JobMetrics:
    """Metrics for a single MapReduce job execution."""

    job_id: str
    start_time: float
    num_map_tasks: int
    num_reduce_tasks: int
    use_combiner: bool
    input_size_bytes: int
    end_time: float = 0.0
    map_phase_end: float = 0.0
    reduce_phase_start: float = 0.0
    intermediate_size_bytes: int = 0
    output_size_bytes: int = 0
    records_read: int = 0
    records_skipped: int = 0
    records_written: int = 0
    peak_rss_bytes: int = 0

    @property
    def total_time_seconds(self) -> float:
        """Total job execution time in seconds."""
        return self.end_time - self.start_time

    @property
    def map_phase_time_seconds(self) -> float:
        """Map phase execution time in seconds."""
        return self.map_phase_end - self.start_time

    @property
    def reduce_phase_time_seconds(self) -> float:
        """Reduce phase execution time in seconds."""
        return self.end_time - self.reduce_phase_start

    @property
    def combiner_reduction_ratio(self) -> float:
        """Fraction of input bytes that never reached the shuffle."""
        if self.input_size_bytes <= 0:
            return 0.0
        return 1.0 - (self.intermediate_size_bytes / self.input_size_bytes)

    def to_dict(self) -> dict:
        """Convert metrics to dictionary."""
        data = asdict(self)
        data['total_time_seconds'] = self.total_time_seconds
        data['combiner_reduction_ratio'] = self.combiner_reduction_ratio
        return data

    def save_to_file(self, filepath: str):
        """Save metrics to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


class MetricsCollector:
    """Collects and manages metrics for MapReduce jobs."""

    def __init__(self):
        self.job_metrics: Dict[str, JobMetrics] = {}
        self.process = psutil.Process()

    def _sample_memory(self, job_id: str):
        rss = self.process.memory_info().rss
        metrics = self.job_metrics[job_id]
        metrics.peak_rss_bytes = max(metrics.peak_rss_bytes, rss)

    def start_job(self, job_id: str, num_map_tasks: int, num_reduce_tasks: int,
                  use_combiner: bool, input_paths):
        """Initialize metrics tracking for a new job."""
        self.job_metrics[job_id] = JobMetrics(
            job_id=job_id,
            start_time=time.time(),
            num_map_tasks=num_map_tasks,
            num_reduce_tasks=num_reduce_tasks,
            use_combiner=use_combiner,
            input_size_bytes=_total_size(input_paths)
        )
        self._sample_memory(job_id)

    def record_map_result(self, job_id: str, result: dict):
        if job_id in self.job_metrics:
            self.job_metrics[job_id].records_read += result.get('records_read', 0)
            self.job_metrics[job_id].records_skipped += result.get('records_skipped', 0)

    def record_reduce_result(self, job_id: str, result: dict):
        if job_id in self.job_metrics:
            self.job_metrics[job_id].records_written += result.get('records_written', 0)

    def end_map_phase(self, job_id: str):
        """Mark the end of the map phase."""
        if job_id in self.job_metrics:
            self.job_metrics[job_id].map_phase_end = time.time()
            self._sample_memory(job_id)

    def start_reduce_phase(self, job_id: str, job_intermediate_dir: str):
        """Mark the start of the reduce phase and measure intermediate data size."""
        if job_id in self.job_metrics:
            self.job_metrics[job_id].reduce_phase_start = time.time()
            pattern = os.path.join(job_intermediate_dir, "map-*-reduce-*.txt")
            self.job_metrics[job_id].intermediate_size_bytes = _total_size(glob.glob(pattern))

    def end_job(self, job_id: str, output_path: str):
        """Mark job completion and measure output size."""
        if job_id in self.job_metrics:
            self.job_metrics[job_id].end_time = time.time()
            output_files = glob.glob(os.path.join(output_path, "part-*.txt"))
            self.job_metrics[job_id].output_size_bytes = _total_size(output_files)
            self._sample_memory(job_id)

    def get_metrics(self, job_id: str) -> Optional[JobMetrics]:
        """Retrieve metrics for a specific job."""
        return self.job_metrics.get(job_id)
