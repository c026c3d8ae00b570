"""
Job modules loaded by the engine. Each defines map_function and a reduce
function; see stockrank.worker.function_loader for the optional hooks.
"""

import os

JOBS_DIR = os.path.dirname(os.path.abspath(__file__))

STOCK_CODE_COUNT_JOB = os.path.join(JOBS_DIR, 'stock_code_count.py')
STOCK_CODE_RANK_JOB = os.path.join(JOBS_DIR, 'stock_code_rank.py')
