"""
Unit tests for ReduceExecutor
"""

import json
import os
from unittest.mock import patch

from stockrank.jobs import STOCK_CODE_COUNT_JOB, STOCK_CODE_RANK_JOB
from stockrank.worker.reduce_executor import ReduceExecutor


def _write_intermediate(path, pairs):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        for key, value in pairs:
            f.write(json.dumps({'key': key, 'value': value}) + '\n')
    return path


def _executor(files, temp_dir, job_file=STOCK_CODE_COUNT_JOB):
    return ReduceExecutor(
        task_id=0,
        partition_id=0,
        intermediate_files=files,
        job_file=job_file,
        output_path=os.path.join(temp_dir, 'output'),
        job_id='test-job'
    )


def _output_lines(result):
    with open(result['output_file']) as f:
        return f.read().splitlines()


class TestReduceExecutorGrouping:
    """Tests for key grouping functionality"""

    def test_groups_values_across_files(self, temp_dir):
        file1 = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'),
                                    [("apple", 1), ("banana", 1), ("apple", 2)])
        file2 = _write_intermediate(os.path.join(temp_dir, 'i', 'map-1-reduce-0.txt'),
                                    [("apple", 1), ("cherry", 1)])

        with patch('stockrank.worker.reduce_executor.FunctionLoader'):
            key_groups = _executor([file1, file2], temp_dir)._read_and_group_intermediate()

        assert key_groups == {"apple": [1, 2, 1], "banana": [1], "cherry": [1]}

    def test_integer_keys_stay_integers(self, temp_dir):
        path = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'),
                                   [(3, "A"), (10, "B")])

        with patch('stockrank.worker.reduce_executor.FunctionLoader'):
            key_groups = _executor([path], temp_dir)._read_and_group_intermediate()

        assert set(key_groups) == {3, 10}

    def test_handles_missing_intermediate_files(self, temp_dir):
        with patch('stockrank.worker.reduce_executor.FunctionLoader'):
            key_groups = _executor(['/nonexistent/file.txt'], temp_dir)._read_and_group_intermediate()

        assert len(key_groups) == 0

    def test_skips_malformed_json_lines(self, temp_dir):
        path = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'), [("apple", 1)])
        with open(path, 'a') as f:
            f.write('invalid json line\n')
            f.write(json.dumps({'value': 1}) + '\n')

        with patch('stockrank.worker.reduce_executor.FunctionLoader'):
            key_groups = _executor([path], temp_dir)._read_and_group_intermediate()

        assert key_groups == {"apple": [1]}


class TestReduceExecutorExecution:
    """Tests for full reduce task execution"""

    def test_count_job_writes_code_and_total(self, temp_dir):
        path = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'),
                                   [("FOO", 2), ("BAR", 1), ("FOO", 1)])
        result = _executor([path], temp_dir).execute()

        assert result['success'] is True
        assert result['records_written'] == 2
        assert os.path.basename(result['output_file']) == 'part-0.txt'
        assert _output_lines(result) == ["BAR\t1", "FOO\t3"]

    def test_rank_job_orders_by_descending_count(self, temp_dir):
        path = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'),
                                   [(1, "D"), (5, "A"), (3, "C"), (3, "B")])
        result = _executor([path], temp_dir, job_file=STOCK_CODE_RANK_JOB).execute()

        assert result['success'] is True
        assert _output_lines(result) == ["1:A,5", "2:B,3", "3:C,3", "4:D,1"]

    def test_empty_input_writes_empty_part_file(self, temp_dir):
        result = _executor([], temp_dir).execute()

        assert result['success'] is True
        assert _output_lines(result) == []

    def test_reduce_error_is_reported(self, temp_dir):
        bad_job = os.path.join(temp_dir, 'bad_job.py')
        with open(bad_job, 'w') as f:
            f.write("def map_function(key, value):\n    yield (value, 1)\n\n"
                    "def reduce_function(key, values):\n    raise ValueError('bad reduce')\n")
        path = _write_intermediate(os.path.join(temp_dir, 'i', 'map-0-reduce-0.txt'), [("FOO", 1)])

        result = _executor([path], temp_dir, job_file=bad_job).execute()

        assert result['success'] is False
        assert 'bad reduce' in result['error_message']
