"""
Job Manager for the MapReduce engine
Handles job state management, task generation, and progress tracking
"""

import glob
import os
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from stockrank.common.input_format import compute_splits


class JobStatus(Enum):
    """Status of a MapReduce job"""
    PENDING = "pending"
    MAP_PHASE = "map_phase"
    SHUFFLE_PHASE = "shuffle_phase"
    REDUCE_PHASE = "reduce_phase"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskStatus(Enum):
    """Status of individual map or reduce tasks"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class MapTask:
    """Represents a single map task"""
    task_id: int
    input_path: str
    start_offset: int
    end_offset: int
    skip_header: bool = False
    status: TaskStatus = TaskStatus.PENDING


@dataclass
class ReduceTask:
    """Represents a single reduce task"""
    task_id: int
    partition_id: int
    intermediate_files: List[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING


@dataclass
class Job:
    """Represents a complete MapReduce job"""
    job_id: str
    input_paths: List[str]
    output_path: str
    job_file: str
    intermediate_dir: str
    num_map_tasks: int
    num_reduce_tasks: int
    use_combiner: bool
    skip_header: bool = False
    status: JobStatus = JobStatus.PENDING
    map_tasks: List[MapTask] = field(default_factory=list)
    reduce_tasks: List[ReduceTask] = field(default_factory=list)
    start_time: float = 0.0
    end_time: float = 0.0
    error_message: str = ""

    @property
    def job_intermediate_dir(self) -> str:
        return os.path.join(self.intermediate_dir, self.job_id)


class JobManager:
    """Manages all MapReduce jobs and their lifecycle"""

    def __init__(self):
        self.jobs: Dict[str, Job] = {}
        self.lock = threading.Lock()

    def create_job(self, job_id: str, input_paths: List[str], output_path: str,
                   job_file: str, intermediate_dir: str, num_map_tasks: int,
                   num_reduce_tasks: int, use_combiner: bool,
                   skip_header: bool = False) -> Job:
        """Create and register a new job"""
        if not input_paths:
            raise ValueError(f"Job {job_id} has no input files")
        for path in input_paths:
            if not os.path.isfile(path):
                raise FileNotFoundError(f"Input file not found: {path}")

        with self.lock:
            if job_id in self.jobs:
                raise ValueError(f"Job {job_id} already exists")
            job = Job(
                job_id=job_id,
                input_paths=list(input_paths),
                output_path=output_path,
                job_file=job_file,
                intermediate_dir=intermediate_dir,
                num_map_tasks=num_map_tasks,
                num_reduce_tasks=num_reduce_tasks,
                use_combiner=use_combiner,
                skip_header=skip_header,
                start_time=time.time()
            )
            self.jobs[job.job_id] = job
            return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self.lock:
            return self.jobs.get(job_id)

    def generate_map_tasks(self, job: Job) -> List[MapTask]:
        """Split the input files into about M map tasks"""
        map_tasks = []
        header_assigned = not job.skip_header
        for i, (path, start, end) in enumerate(compute_splits(job.input_paths, job.num_map_tasks)):
            # The header is the first line of the whole dataset, so it lives
            # in the first non-empty split
            owns_header = not header_assigned and end > start
            if owns_header:
                header_assigned = True
            map_tasks.append(MapTask(
                task_id=i,
                input_path=path,
                start_offset=start,
                end_offset=end,
                skip_header=owns_header
            ))

        with self.lock:
            job.map_tasks = map_tasks
            job.status = JobStatus.MAP_PHASE
        return map_tasks

    def generate_reduce_tasks(self, job: Job) -> List[ReduceTask]:
        """Create R reduce tasks with intermediate file assignments"""
        reduce_tasks = []
        for partition_id in range(job.num_reduce_tasks):
            pattern = os.path.join(job.job_intermediate_dir, f"map-*-reduce-{partition_id}.txt")
            intermediate_files = sorted(glob.glob(pattern), key=_map_task_order)

            reduce_tasks.append(ReduceTask(
                task_id=partition_id,
                partition_id=partition_id,
                intermediate_files=intermediate_files
            ))

        with self.lock:
            job.reduce_tasks = reduce_tasks
            job.status = JobStatus.REDUCE_PHASE
        return reduce_tasks

    def mark_map_task_completed(self, job_id: str, task_id: int):
        """Mark map task as completed"""
        with self.lock:
            job = self.jobs.get(job_id)
            if job and task_id < len(job.map_tasks):
                job.map_tasks[task_id].status = TaskStatus.COMPLETED

                if all(t.status == TaskStatus.COMPLETED for t in job.map_tasks):
                    job.status = JobStatus.SHUFFLE_PHASE

    def mark_reduce_task_completed(self, job_id: str, task_id: int):
        """Mark reduce task as completed"""
        with self.lock:
            job = self.jobs.get(job_id)
            if job and task_id < len(job.reduce_tasks):
                job.reduce_tasks[task_id].status = TaskStatus.COMPLETED

                if all(t.status == TaskStatus.COMPLETED for t in job.reduce_tasks):
                    job.status = JobStatus.COMPLETED
                    job.end_time = time.time()

    def mark_failed(self, job_id: str, error_message: str, task=None):
        """Mark the job, and the task that broke it if given, as failed"""
        with self.lock:
            job = self.jobs.get(job_id)
            if task is not None:
                task.status = TaskStatus.FAILED
            if job:
                job.status = JobStatus.FAILED
                job.error_message = error_message
                job.end_time = time.time()

    def get_job_status(self, job_id: str) -> Optional[Dict]:
        """Get current job status with progress"""
        with self.lock:
            job = self.jobs.get(job_id)
            if not job:
                return None

            map_completed = sum(1 for t in job.map_tasks if t.status == TaskStatus.COMPLETED)
            reduce_completed = sum(1 for t in job.reduce_tasks if t.status == TaskStatus.COMPLETED)
            total_tasks = len(job.map_tasks) + len(job.reduce_tasks)
            progress = int((map_completed + reduce_completed) / total_tasks * 100) if total_tasks > 0 else 0

            return {
                'status': job.status.value,
                'progress': progress,
                'map_completed': map_completed,
                'map_total': len(job.map_tasks),
                'reduce_completed': reduce_completed,
                'reduce_total': len(job.reduce_tasks),
                'error_message': job.error_message
            }


def _map_task_order(path: str) -> int:
    # map-<task>-reduce-<partition>.txt
    return int(os.path.basename(path).split('-')[1])
