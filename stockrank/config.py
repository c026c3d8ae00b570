"""
Pipeline configuration with environment overrides
"""

import os
import tempfile
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class PipelineConfig:
    """Settings shared by both phases of a ranking run"""
    work_dir: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), 'stockrank'))
    num_map_tasks: int = 4
    num_reduce_tasks: int = 2
    use_combiner: bool = True
    max_workers: int = 4
    keep_intermediate: bool = False

    def __post_init__(self):
        for name in ('num_map_tasks', 'num_reduce_tasks', 'max_workers'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")

    @property
    def intermediate_dir(self) -> str:
        return os.path.join(self.work_dir, 'intermediate')

    @classmethod
    def from_env(cls, **overrides) -> 'PipelineConfig':
        """Build a config from STOCKRANK_* environment variables; explicit overrides win"""
        defaults = cls.__dataclass_fields__
        values = {
            'work_dir': os.getenv('STOCKRANK_WORK_DIR', defaults['work_dir'].default_factory()),
            'num_map_tasks': int(os.getenv('STOCKRANK_NUM_MAP_TASKS', defaults['num_map_tasks'].default)),
            'num_reduce_tasks': int(os.getenv('STOCKRANK_NUM_REDUCE_TASKS', defaults['num_reduce_tasks'].default)),
            'use_combiner': _env_bool('STOCKRANK_USE_COMBINER', defaults['use_combiner'].default),
            'max_workers': int(os.getenv('STOCKRANK_MAX_WORKERS', defaults['max_workers'].default)),
            'keep_intermediate': _env_bool('STOCKRANK_KEEP_INTERMEDIATE', defaults['keep_intermediate'].default),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
