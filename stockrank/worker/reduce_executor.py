"""
Reduce Task Executor
Executes reduce tasks by reading intermediate data, grouping by key,
ordering the groups, applying reduce functions, and writing final output
"""

import json
import logging
import os
import time
from collections import defaultdict

from stockrank.worker.function_loader import FunctionLoader

logger = logging.getLogger(__name__)


def _hashable(key):
    # JSON turns tuples into lists
    if isinstance(key, list):
        return tuple(_hashable(k) for k in key)
    return key


class ReduceExecutor:
    """Executes a single reduce task"""

    def __init__(self, task_id: int, partition_id: int, intermediate_files: list,
                 job_file: str, output_path: str, job_id: str):
        """
        Initialize the reduce executor

        Args:
            task_id: Unique ID for this reduce task
            partition_id: Partition ID this reduce task is responsible for
            intermediate_files: List of intermediate file paths to read
            job_file: Path or module name of the job
            output_path: Directory path where final output should be written
            job_id: Unique job identifier
        """
        self.task_id = task_id
        self.partition_id = partition_id
        self.intermediate_files = intermediate_files
        self.job_file = job_file
        self.output_path = output_path
        self.job_id = job_id
        self.loader = FunctionLoader(job_file)

    def execute(self) -> dict:
        """
        Execute the reduce task

        Returns:
            Dictionary with 'success', 'execution_time_ms', 'error_message',
            'output_file' and 'records_written' fields
        """
        start_time = time.time()

        try:
            reduce_func = self.loader.get_reduce_function()
            sort_key = self.loader.get_sort_key()
            formatter = self.loader.get_output_formatter()

            key_groups = self._read_and_group_intermediate()
            logger.info("Reduce task %s: grouped %d unique keys", self.task_id, len(key_groups))

            # Every group must be known before the first one is reduced
            results = []
            for key in sorted(key_groups, key=sort_key):
                results.extend(reduce_func(key, key_groups[key]))

            output_file = self._write_output(results, formatter)

            execution_time = int((time.time() - start_time) * 1000)
            logger.info("Reduce task %s: wrote %d records in %dms", self.task_id, len(results), execution_time)

            return {
                'success': True,
                'execution_time_ms': execution_time,
                'error_message': '',
                'output_file': output_file,
                'records_written': len(results),
            }

        except Exception as e:
            execution_time = int((time.time() - start_time) * 1000)
            logger.error("Reduce task %s of job %s failed: %s", self.task_id, self.job_id, e)
            return {
                'success': False,
                'execution_time_ms': execution_time,
                'error_message': f"Reduce task {self.task_id} failed: {e}",
                'output_file': '',
                'records_written': 0,
            }

    def _read_and_group_intermediate(self) -> dict:
        """
        Read all intermediate files and group by key

        Returns:
            Dictionary mapping key to list of values, values in file order
        """
        key_groups = defaultdict(list)
        lines_skipped = 0

        for filepath in self.intermediate_files:
            if not os.path.exists(filepath):
                logger.warning("Reduce task %s: file not found: %s", self.task_id, filepath)
                continue

            with open(filepath, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue

                    try:
                        record = json.loads(line)
                        key_groups[_hashable(record['key'])].append(record['value'])
                    except (json.JSONDecodeError, KeyError, TypeError):
                        lines_skipped += 1

        if lines_skipped:
            logger.warning("Reduce task %s: skipped %d malformed intermediate records",
                           self.task_id, lines_skipped)
        return key_groups

    def _write_output(self, results: list, formatter) -> str:
        """
        Write final reduce output

        Args:
            results: List of (key, value) tuples to write
            formatter: Callable rendering one (key, value) as a line

        Returns:
            Path of the output file
        """
        os.makedirs(self.output_path, exist_ok=True)
        output_file = os.path.join(self.output_path, f"part-{self.partition_id}.txt")

        with open(output_file, 'w', encoding='utf-8') as f:
            for key, value in results:
                f.write(formatter(key, value) + '\n')

        return output_file
