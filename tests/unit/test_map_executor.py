"""
Unit tests for MapExecutor
"""

import json
import os
from unittest.mock import Mock, patch

from stockrank.jobs import STOCK_CODE_COUNT_JOB, STOCK_CODE_RANK_JOB
from stockrank.worker.map_executor import MapExecutor, partition_for


def _executor(input_file, temp_dir, job_file=STOCK_CODE_COUNT_JOB, start=0, end=None,
              num_reduce_tasks=2, use_combiner=False, skip_header=True):
    return MapExecutor(
        task_id=0,
        input_path=input_file,
        start_offset=start,
        end_offset=os.path.getsize(input_file) if end is None else end,
        num_reduce_tasks=num_reduce_tasks,
        job_file=job_file,
        use_combiner=use_combiner,
        job_id='test-job',
        intermediate_dir=os.path.join(temp_dir, 'intermediate'),
        skip_header=skip_header
    )


def _read_pairs(files):
    pairs = []
    for path in files:
        with open(path) as f:
            pairs.extend((r['key'], r['value']) for r in map(json.loads, f))
    return pairs


class TestMapExecutorInputSplitting:
    """Tests for input split reading"""

    def test_header_dropped_when_split_owns_it(self, sample_input_file, temp_dir):
        with patch('stockrank.worker.map_executor.FunctionLoader'):
            key_values = _executor(sample_input_file, temp_dir)._read_input_split()

        assert len(key_values) == 8
        assert all(not line.startswith('date') for _, line in key_values)

    def test_header_kept_when_split_does_not_own_it(self, sample_input_file, temp_dir):
        with patch('stockrank.worker.map_executor.FunctionLoader'):
            key_values = _executor(sample_input_file, temp_dir, skip_header=False)._read_input_split()

        assert len(key_values) == 9
        assert key_values[0][1] == "date,price,volume,code"

    def test_keys_identify_line_position(self, sample_input_file, temp_dir):
        with patch('stockrank.worker.map_executor.FunctionLoader'):
            key_values = _executor(sample_input_file, temp_dir)._read_input_split()

        assert len({k for k, _ in key_values}) == len(key_values)


class TestMapExecutorPartitioning:
    """Tests for hash-based partitioning"""

    def test_partition_is_stable_and_in_range(self):
        for key in ["600000", "601318", 7, "FOO"]:
            assert 0 <= partition_for(key, 3) < 3
            assert partition_for(key, 3) == partition_for(key, 3)

    def test_each_key_lands_in_its_partition_file(self, sample_input_file, temp_dir):
        result = _executor(sample_input_file, temp_dir, num_reduce_tasks=3).execute()

        assert result['success'] is True
        for path in result['output_files']:
            partition = int(path.rsplit('-', 1)[1].split('.')[0])
            for key, _ in _read_pairs([path]):
                assert partition_for(key, 3) == partition


class TestMapExecutorExecution:
    """Tests for full map task execution"""

    def test_emits_one_pair_per_valid_record(self, sample_input_file, temp_dir):
        result = _executor(sample_input_file, temp_dir).execute()

        assert result['success'] is True
        assert result['records_read'] == 8
        assert result['records_skipped'] == 2
        pairs = _read_pairs(result['output_files'])
        assert sorted(pairs) == sorted([
            ("600000", 1), ("600000", 1), ("600000", 1),
            ("601318", 1), ("601318", 1), ("000001", 1),
        ])

    def test_combiner_pre_aggregates(self, sample_input_file, temp_dir):
        result = _executor(sample_input_file, temp_dir, use_combiner=True).execute()

        assert result['success'] is True
        assert sorted(_read_pairs(result['output_files'])) == [
            ("000001", 1), ("600000", 3), ("601318", 2),
        ]
        assert result['pairs_written'] == 3

    def test_intermediate_files_named_by_task_and_partition(self, sample_input_file, temp_dir):
        result = _executor(sample_input_file, temp_dir).execute()

        for path in result['output_files']:
            assert os.path.dirname(path) == os.path.join(temp_dir, 'intermediate', 'test-job')
            assert os.path.basename(path).startswith('map-0-reduce-')

    def test_bad_count_fails_task(self, write_input, temp_dir):
        input_file = write_input(["FOO\t3", "BAR\tnot-a-number"], name='counts.txt')
        result = _executor(input_file, temp_dir, job_file=STOCK_CODE_RANK_JOB,
                           skip_header=False).execute()

        assert result['success'] is False
        assert 'not-a-number' in result['error_message']
        assert result['output_files'] == []

    def test_map_function_error_is_reported(self, sample_input_file, temp_dir):
        def broken_map(key, value):
            raise RuntimeError("boom")
            yield

        mock_loader = Mock()
        mock_loader.get_map_function.return_value = broken_map

        with patch('stockrank.worker.map_executor.FunctionLoader', return_value=mock_loader):
            result = _executor(sample_input_file, temp_dir).execute()

        assert result['success'] is False
        assert 'boom' in result['error_message']
