"""
Pytest configuration and shared fixtures
"""

import os
import shutil
import tempfile

import pytest

from stockrank.config import PipelineConfig


@pytest.fixture
def temp_dir():
    """Create temporary directory for test files"""
    dirpath = tempfile.mkdtemp()
    yield dirpath
    shutil.rmtree(dirpath)


@pytest.fixture
def sample_records():
    """Header plus data lines, including malformed ones"""
    return """date,price,volume,code
2024-01-02,10.5,300,600000
2024-01-02,22.1,120,601318
2024-01-03,10.7,450, 600000
2024-01-03,bad line
2024-01-03,11.0,200,600000,extra
2024-01-04,22.4,90,601318
2024-01-04,5.2,1000,000001
2024-01-05,10.9,310,600000
"""


@pytest.fixture
def sample_input_file(temp_dir, sample_records):
    """Create a sample CSV input file for testing"""
    filepath = os.path.join(temp_dir, 'input.csv')
    with open(filepath, 'w') as f:
        f.write(sample_records)
    return filepath


@pytest.fixture
def write_input(temp_dir):
    """Factory writing a list of lines to a file in temp_dir"""
    def _write(lines, name='input.csv'):
        filepath = os.path.join(temp_dir, name)
        with open(filepath, 'w') as f:
            f.write('\n'.join(lines) + '\n')
        return filepath
    return _write


@pytest.fixture
def pipeline_config(temp_dir):
    """Small config writing intermediate data under temp_dir"""
    return PipelineConfig(
        work_dir=os.path.join(temp_dir, 'work'),
        num_map_tasks=3,
        num_reduce_tasks=2,
        use_combiner=True,
        max_workers=2
    )
