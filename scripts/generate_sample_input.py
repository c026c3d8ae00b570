#!/usr/bin/env python3
"""
Generate a synthetic stock record CSV for demos and benchmarks.
Each data line has four fields; the stock code is the last one.
"""

import argparse
import random
from pathlib import Path

HEADER = "date,price,volume,code"
DEFAULT_CODES = ["600000", "600036", "601318", "000001", "000002", "300750", "688981"]


def generate_records(num_records: int, codes=None, seed: int = 0):
    """
    Produce data lines with a skewed code distribution.

    Args:
        num_records: Number of data lines (header excluded)
        codes: Stock codes to draw from
        seed: Random seed for reproducible output

    Returns:
        List of CSV lines without newlines
    """
    codes = codes or DEFAULT_CODES
    rng = random.Random(seed)
    weights = [len(codes) - i for i in range(len(codes))]

    lines = []
    for i in range(num_records):
        code = rng.choices(codes, weights=weights)[0]
        price = round(rng.uniform(5, 200), 2)
        volume = rng.randint(100, 100000)
        lines.append(f"2024-01-{(i % 28) + 1:02d},{price},{volume},{code}")
    return lines


def write_input_file(output_path: Path, num_records: int, seed: int = 0) -> int:
    """Write header plus generated records; returns the file size in bytes"""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(HEADER + "\n")
        for line in generate_records(num_records, seed=seed):
            f.write(line + "\n")
    return output_path.stat().st_size


def main():
    parser = argparse.ArgumentParser(description='Generate stock record input')
    parser.add_argument('output', type=Path, help='Destination CSV path')
    parser.add_argument('--records', type=int, default=10000, help='Number of data lines (default: 10000)')
    parser.add_argument('--seed', type=int, default=0, help='Random seed')
    args = parser.parse_args()

    size = write_input_file(args.output, args.records, args.seed)
    print(f"✓ Created: {args.output} ({size / 1024:.1f} KB, {args.records} records)")


if __name__ == "__main__":
    main()
