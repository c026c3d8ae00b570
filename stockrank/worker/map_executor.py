"""
Map Task Executor
Executes map tasks by reading input splits, applying map functions,
partitioning output, and writing intermediate files
"""

import json
import logging
import os
import time
import zlib
from collections import defaultdict

from stockrank.common.input_format import read_split, skip_header
from stockrank.worker.function_loader import FunctionLoader

logger = logging.getLogger(__name__)


def partition_for(key, num_partitions: int) -> int:
    """Stable hash partitioning, identical across processes and runs"""
    return zlib.crc32(str(key).encode('utf-8')) % num_partitions


class MapExecutor:
    """Executes a single map task"""

    def __init__(self, task_id: int, input_path: str, start_offset: int,
                 end_offset: int, num_reduce_tasks: int, job_file: str,
                 use_combiner: bool, job_id: str, intermediate_dir: str,
                 skip_header: bool = False):
        """
        Initialize the map executor

        Args:
            task_id: Unique ID for this map task
            input_path: Path to input file
            start_offset: Byte offset where this task should start reading
            end_offset: Byte offset where this task should stop reading
            num_reduce_tasks: Number of reduce tasks (for partitioning)
            job_file: Path or module name of the job
            use_combiner: Whether to apply combiner function
            job_id: Unique job identifier
            intermediate_dir: Root directory for intermediate files
            skip_header: Whether this split holds the dataset header line
        """
        self.task_id = task_id
        self.input_path = input_path
        self.start_offset = start_offset
        self.end_offset = end_offset
        self.num_reduce_tasks = num_reduce_tasks
        self.job_file = job_file
        self.use_combiner = use_combiner
        self.job_id = job_id
        self.intermediate_dir = intermediate_dir
        self.skip_header = skip_header
        self.loader = FunctionLoader(job_file)

    def execute(self) -> dict:
        """
        Execute the map task

        Returns:
            Dictionary with 'success', 'execution_time_ms', 'error_message',
            'output_files', 'records_read', 'records_skipped' and
            'pairs_written' fields
        """
        start_time = time.time()

        try:
            map_func = self.loader.get_map_function()

            key_values = self._read_input_split()
            logger.info("Map task %s: processing %d records", self.task_id, len(key_values))

            # Apply map function and partition output
            intermediate = defaultdict(list)
            skipped = 0
            for key, value in key_values:
                emitted = False
                for out_key, out_value in map_func(key, value):
                    intermediate[partition_for(out_key, self.num_reduce_tasks)].append((out_key, out_value))
                    emitted = True
                if not emitted:
                    skipped += 1

            generated = sum(len(v) for v in intermediate.values())
            logger.debug("Map task %s: generated %d intermediate pairs", self.task_id, generated)

            if self.use_combiner:
                intermediate = self._apply_combiner(intermediate)
                logger.debug("Map task %s: after combiner: %d pairs", self.task_id,
                             sum(len(v) for v in intermediate.values()))

            output_files = self._write_intermediate_files(intermediate)

            execution_time = int((time.time() - start_time) * 1000)
            logger.info("Map task %s: completed in %dms", self.task_id, execution_time)

            return {
                'success': True,
                'execution_time_ms': execution_time,
                'error_message': '',
                'output_files': output_files,
                'records_read': len(key_values),
                'records_skipped': skipped,
                'pairs_written': sum(len(v) for v in intermediate.values()),
            }

        except Exception as e:
            execution_time = int((time.time() - start_time) * 1000)
            logger.error("Map task %s of job %s failed: %s", self.task_id, self.job_id, e)
            return {
                'success': False,
                'execution_time_ms': execution_time,
                'error_message': f"Map task {self.task_id} failed: {e}",
                'output_files': [],
                'records_read': 0,
                'records_skipped': 0,
                'pairs_written': 0,
            }

    def _read_input_split(self):
        """
        Read assigned portion of input file with line boundary alignment

        Returns:
            List of (position, line_content) tuples
        """
        records = read_split(self.input_path, self.start_offset, self.end_offset)
        if self.skip_header:
            records = skip_header(records)
        return [(f"{self.input_path}:{self.start_offset}:{line_num}", line)
                for line_num, line in records]

    def _apply_combiner(self, intermediate: dict) -> dict:
        """
        Apply combiner function to local map output

        Args:
            intermediate: Dictionary mapping partition_id to list of (key, value) pairs

        Returns:
            Dictionary with same structure but with combined values
        """
        combiner_func = self.loader.get_combiner_function()
        if not combiner_func:
            return intermediate

        combined = {}
        for partition, kv_pairs in intermediate.items():
            key_groups = defaultdict(list)
            for k, v in kv_pairs:
                key_groups[k].append(v)

            combined_pairs = []
            for key, values in key_groups.items():
                combined_pairs.extend(combiner_func(key, values))

            combined[partition] = combined_pairs

        return combined

    def _write_intermediate_files(self, intermediate: dict) -> list:
        """
        Write intermediate key-value pairs to disk in JSON format

        Args:
            intermediate: Dictionary mapping partition_id to list of (key, value) pairs

        Returns:
            Paths of the files written
        """
        job_dir = os.path.join(self.intermediate_dir, self.job_id)
        os.makedirs(job_dir, exist_ok=True)

        written = []
        for partition, kv_pairs in sorted(intermediate.items()):
            if not kv_pairs:
                continue
            filename = os.path.join(job_dir, f"map-{self.task_id}-reduce-{partition}.txt")

            with open(filename, 'w', encoding='utf-8') as f:
                for key, value in kv_pairs:
                    f.write(json.dumps({'key': key, 'value': value}) + '\n')
            written.append(filename)

        return written
