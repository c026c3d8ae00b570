"""
Job execution for the stock code ranking pipeline.

JobRunner runs one MapReduce job locally: map tasks in parallel on a thread
pool, a hard barrier once every map task has finished, then the reduce
tasks. StockRankPipeline chains the count job and the rank job through the
materialized count dataset.
"""

import glob
import json
import logging
import os
import shutil
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from stockrank.common.types import RankedEntry
from stockrank.config import PipelineConfig
from stockrank.coordinator.job_manager import Job, JobManager
from stockrank.coordinator.metrics import JobMetrics, MetricsCollector
from stockrank.jobs import STOCK_CODE_COUNT_JOB, STOCK_CODE_RANK_JOB
from stockrank.worker.function_loader import FunctionLoader
from stockrank.worker.map_executor import MapExecutor
from stockrank.worker.reduce_executor import ReduceExecutor

logger = logging.getLogger(__name__)

COUNT_DIR_NAME = 'codecnttmp'
RANK_DIR_NAME = 'coderank'
METRICS_FILE_NAME = '_metrics.json'


class JobFailedError(RuntimeError):
    """A task failed and the job was abandoned without output"""

    def __init__(self, job_id: str, message: str):
        super().__init__(f"Job {job_id} failed: {message}")
        self.job_id = job_id


class JobRunner:
    """Runs MapReduce jobs on the local machine"""

    def __init__(self, config: PipelineConfig, job_manager: Optional[JobManager] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.config = config
        self.job_manager = job_manager or JobManager()
        self.metrics = metrics or MetricsCollector()

    def run(self, name: str, job_file: str, input_paths: List[str], output_path: str,
            num_reduce_tasks: Optional[int] = None) -> Job:
        """
        Run one job to completion

        Args:
            name: Prefix for the generated job id
            job_file: Path or module name of the job
            input_paths: Input files, in dataset order
            output_path: Directory receiving part-<n>.txt files
            num_reduce_tasks: Reduce partitions; defaults to the config value

        Returns:
            The completed Job

        Raises:
            JobFailedError: If any map or reduce task fails
        """
        loader = FunctionLoader(job_file)
        reduce_tasks = num_reduce_tasks or self.config.num_reduce_tasks
        required = loader.get_required_reduce_tasks()
        if required is not None and required != reduce_tasks:
            logger.info("Job %s requires %d reduce task(s), overriding %d", name, required, reduce_tasks)
            reduce_tasks = required

        job = self.job_manager.create_job(
            job_id=f"{name}-{uuid.uuid4().hex[:8]}",
            input_paths=input_paths,
            output_path=output_path,
            job_file=job_file,
            intermediate_dir=self.config.intermediate_dir,
            num_map_tasks=self.config.num_map_tasks,
            num_reduce_tasks=reduce_tasks,
            use_combiner=self.config.use_combiner,
            skip_header=loader.get_skip_header()
        )
        self.metrics.start_job(job.job_id, job.num_map_tasks, job.num_reduce_tasks,
                               job.use_combiner, job.input_paths)
        logger.info("Job %s: %d input file(s), %d reduce task(s)",
                    job.job_id, len(job.input_paths), job.num_reduce_tasks)

        try:
            self._run_map_phase(job)
            self._run_reduce_phase(job)
        except JobFailedError:
            shutil.rmtree(job.output_path, ignore_errors=True)
            raise
        finally:
            if not self.config.keep_intermediate:
                shutil.rmtree(job.job_intermediate_dir, ignore_errors=True)

        self.metrics.end_job(job.job_id, job.output_path)
        logger.info("Job %s completed", job.job_id)
        return job

    def _run_map_phase(self, job: Job):
        tasks = self.job_manager.generate_map_tasks(job)
        executors = [
            MapExecutor(
                task_id=task.task_id,
                input_path=task.input_path,
                start_offset=task.start_offset,
                end_offset=task.end_offset,
                num_reduce_tasks=job.num_reduce_tasks,
                job_file=job.job_file,
                use_combiner=job.use_combiner,
                job_id=job.job_id,
                intermediate_dir=job.intermediate_dir,
                skip_header=task.skip_header
            )
            for task in tasks
        ]

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            results = list(pool.map(lambda executor: executor.execute(), executors))

        for task, result in zip(tasks, results):
            self._check(job, task, result)
            self.metrics.record_map_result(job.job_id, result)
            self.job_manager.mark_map_task_completed(job.job_id, task.task_id)

        self.metrics.end_map_phase(job.job_id)

    def _run_reduce_phase(self, job: Job):
        self.metrics.start_reduce_phase(job.job_id, job.job_intermediate_dir)
        tasks = self.job_manager.generate_reduce_tasks(job)
        executors = [
            ReduceExecutor(
                task_id=task.task_id,
                partition_id=task.partition_id,
                intermediate_files=task.intermediate_files,
                job_file=job.job_file,
                output_path=job.output_path,
                job_id=job.job_id
            )
            for task in tasks
        ]

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            results = list(pool.map(lambda executor: executor.execute(), executors))

        for task, result in zip(tasks, results):
            self._check(job, task, result)
            self.metrics.record_reduce_result(job.job_id, result)
            self.job_manager.mark_reduce_task_completed(job.job_id, task.task_id)

    def _check(self, job: Job, task, result: dict):
        if not result['success']:
            self.job_manager.mark_failed(job.job_id, result['error_message'], task)
            raise JobFailedError(job.job_id, result['error_message'])


@dataclass
class PipelineResult:
    """Locations and metrics of a finished ranking run"""
    count_path: str
    rank_path: str
    metrics: Dict[str, JobMetrics] = field(default_factory=dict)

    @property
    def ranked_files(self) -> List[str]:
        return part_files(self.rank_path)


def part_files(directory: str) -> List[str]:
    """Reduce output files of a job directory, in partition order"""
    files = glob.glob(os.path.join(directory, 'part-*.txt'))
    return sorted(files, key=lambda p: int(os.path.basename(p)[len('part-'):-len('.txt')]))


def read_ranked_output(directory: str) -> List[RankedEntry]:
    """Parse the rank job output back into RankedEntry records"""
    entries = []
    for path in part_files(directory):
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                rank, rest = line.split(':', 1)
                code, count = rest.rsplit(',', 1)
                entries.append(RankedEntry(int(rank), code, int(count)))
    return entries


class StockRankPipeline:
    """Counts stock codes, then ranks them by descending count"""

    def __init__(self, config: Optional[PipelineConfig] = None,
                 count_job: str = STOCK_CODE_COUNT_JOB, rank_job: str = STOCK_CODE_RANK_JOB):
        self.config = config or PipelineConfig()
        self.count_job = count_job
        self.rank_job = rank_job
        self.runner = JobRunner(self.config)

    def run(self, input_paths: List[str], output_dir: str, overwrite: bool = False) -> PipelineResult:
        """
        Run both phases

        Args:
            input_paths: CSV input files; the first line of the first one is the header
            output_dir: Receives codecnttmp/ (counts) and coderank/ (ranking)
            overwrite: Replace an existing output directory

        Raises:
            FileExistsError: If output_dir already holds results and overwrite is False
            JobFailedError: If either phase fails; no ranking output is left behind
        """
        count_path = os.path.join(output_dir, COUNT_DIR_NAME)
        rank_path = os.path.join(output_dir, RANK_DIR_NAME)

        for path in (count_path, rank_path):
            if os.path.exists(path):
                if not overwrite:
                    raise FileExistsError(f"Output directory already exists: {path}")
                shutil.rmtree(path)

        count_job = self.runner.run('stock-code-count', self.count_job, input_paths, count_path)

        # The rank job starts only once every count partition is written
        rank_job = self.runner.run('stock-code-rank', self.rank_job, part_files(count_path), rank_path)

        result = PipelineResult(
            count_path=count_path,
            rank_path=rank_path,
            metrics={
                'count': self.runner.metrics.get_metrics(count_job.job_id),
                'rank': self.runner.metrics.get_metrics(rank_job.job_id),
            }
        )
        self._save_metrics(result, output_dir)
        return result

    def _save_metrics(self, result: PipelineResult, output_dir: str):
        path = os.path.join(output_dir, METRICS_FILE_NAME)
        with open(path, 'w') as f:
            json.dump({name: m.to_dict() for name, m in result.metrics.items()}, f, indent=2)
        logger.info("Metrics written to %s", path)
