"""
Dynamic Function Loader for MapReduce Job Modules
Loads job modules containing map, reduce, and combiner functions plus the
optional hooks the engine understands:

    combiner_function(key, values)   local pre-aggregation
    make_reduce_function()           factory for a stateful reducer
    sort_key(key)                    order of reduce groups
    format_output(key, value)        output line rendering
    NUM_REDUCE_TASKS                 required number of reduce partitions
    SKIP_HEADER                      drop the first line of the dataset
"""

import importlib
import importlib.util
import logging
import os
import sys

logger = logging.getLogger(__name__)


class FunctionLoader:
    """Dynamically loads job functions from a Python file or module name"""

    def __init__(self, job_file: str):
        """
        Initialize the function loader

        Args:
            job_file: Path to a job Python file, or a dotted module name
        """
        self.job_file = job_file
        self.module = None

    def load_module(self):
        """
        Dynamically load the job module

        Returns:
            The loaded module object

        Raises:
            FileNotFoundError: If the job file doesn't exist
        """
        if self.job_file.endswith('.py') or os.sep in self.job_file:
            if not os.path.exists(self.job_file):
                raise FileNotFoundError(f"Job file not found: {self.job_file}")

            module_name = "stockrank_job_" + os.path.splitext(os.path.basename(self.job_file))[0]
            spec = importlib.util.spec_from_file_location(module_name, self.job_file)
            if spec is None or spec.loader is None:
                raise RuntimeError(f"Failed to load job file: {self.job_file}")
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        else:
            module = importlib.import_module(self.job_file)

        logger.debug("Loaded job module %s from %s", module.__name__, self.job_file)
        self.module = module
        return module

    def _require_module(self):
        if not self.module:
            self.load_module()
        return self.module

    def get_map_function(self):
        """
        Get map function from loaded module

        Raises:
            AttributeError: If module doesn't define 'map_function'
        """
        module = self._require_module()
        if not hasattr(module, 'map_function'):
            raise AttributeError("Module must define 'map_function'")
        return module.map_function

    def get_reduce_function(self):
        """
        Get reduce function from loaded module

        A module defining make_reduce_function gets a fresh reducer on every
        call, which lets reducers keep state across key groups.

        Raises:
            AttributeError: If module defines neither 'reduce_function' nor
                'make_reduce_function'
        """
        module = self._require_module()
        if hasattr(module, 'make_reduce_function'):
            return module.make_reduce_function()
        if not hasattr(module, 'reduce_function'):
            raise AttributeError("Module must define 'reduce_function' or 'make_reduce_function'")
        return module.reduce_function

    def get_combiner_function(self):
        """
        Get combiner function from loaded module

        Returns:
            The combiner_function callable, or None
        """
        module = self._require_module()
        return getattr(module, 'combiner_function', None)

    def get_sort_key(self):
        """Key function ordering reduce groups, or None for natural key order"""
        return getattr(self._require_module(), 'sort_key', None)

    def get_output_formatter(self):
        """Output line formatter; defaults to tab separated key and value"""
        formatter = getattr(self._require_module(), 'format_output', None)
        if formatter is None:
            return lambda key, value: f"{key}\t{value}"
        return formatter

    def get_required_reduce_tasks(self):
        """Number of reduce partitions the job insists on, or None"""
        return getattr(self._require_module(), 'NUM_REDUCE_TASKS', None)

    def get_skip_header(self) -> bool:
        return bool(getattr(self._require_module(), 'SKIP_HEADER', False))
