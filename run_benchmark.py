#!/usr/bin/env python3
"""
Benchmark and cross-check every prime engine.

For each configured bound, builds each engine, counts the primes up to the
bound and records the last one. All engines must agree.

Usage:
    python run_benchmark.py
    python run_benchmark.py --config config/custom.yaml
    python run_benchmark.py --engines sieve segment
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import yaml

from primegen.engines import ENGINES, make_generator


def setup_logger(log_path: Optional[Path] = None) -> logging.Logger:
    """Set up the primegen logger: console always, file if requested."""
    logger = logging.getLogger("primegen")
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    logger.handlers.clear()

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('    %(message)s'))
    logger.addHandler(console_handler)

    return logger


def run_engine(name: str, bound: int, options: Dict[str, Any]) -> Dict[str, Any]:
    """Build one engine and walk every prime up to bound."""
    t0 = time.time()
    generator = make_generator(name, bound, **options)
    t_build = time.time() - t0

    count = 0
    last = 0

    def visit(p: int) -> bool:
        nonlocal count, last
        count += 1
        last = p
        return False

    t0 = time.time()
    ok = generator.iterate(0, bound, visit)
    t_iterate = time.time() - t0

    return {
        'engine': name,
        'bound': bound,
        'ok': ok,
        'count': count,
        'last_prime': last,
        'build_s': round(t_build, 4),
        'iterate_s': round(t_iterate, 4),
        'total_s': round(t_build + t_iterate, 4),
    }


def check_agreement(df: pd.DataFrame) -> bool:
    """True if every engine reported the same count and last prime per bound."""
    if df.empty:
        return True
    agree = True
    for bound, group in df[df['ok']].groupby('bound'):
        if group['count'].nunique() != 1 or group['last_prime'].nunique() != 1:
            print(f"  ✗ Engines disagree at bound {bound:,}:")
            print(group[['engine', 'count', 'last_prime']].to_string(index=False))
            agree = False
    return agree


def main():
    parser = argparse.ArgumentParser(description='Benchmark prime engines')
    parser.add_argument('--config', type=str, default='config/default.yaml',
                        help='Path to config file')
    parser.add_argument('--engines', nargs='+', choices=sorted(ENGINES),
                        help='Engines to run (overrides config)')
    args = parser.parse_args()

    # Load config
    with open(args.config) as f:
        config = yaml.safe_load(f)

    bounds = [int(b) for b in config['bounds']]
    engines = args.engines or config['engines']
    max_bounds = config.get('engine_max_bound') or {}
    segment_options = {
        'l2_cache_bytes': int(config.get('l2_cache_bytes', 4_000_000)),
        'num_workers': config.get('num_workers'),
    }

    output_dir = Path(config.get('output_dir', 'data/results'))
    output_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.get('log_file')
    setup_logger(Path(log_file) if log_file else None)

    print("=" * 60)
    print("Prime Engine Benchmark")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  bounds = {[f'{b:,}' for b in bounds]}")
    print(f"  engines = {engines}")
    print(f"  l2_cache_bytes = {segment_options['l2_cache_bytes']:,}")
    print(f"  num_workers = {segment_options['num_workers'] or 'CPU count'}")
    print()

    rows = []
    total_start = time.time()
    for bound in bounds:
        print("-" * 60)
        print(f"Bound {bound:,}")
        print("-" * 60)
        for name in engines:
            if name in max_bounds and bound > int(max_bounds[name]):
                print(f"  {name:8s} skipped (engine_max_bound {int(max_bounds[name]):,})")
                continue
            options = segment_options if name == 'segment' else {}
            row = run_engine(name, bound, options)
            rows.append(row)
            if row['ok']:
                print(f"  {name:8s} {row['count']:>12,} primes  "
                      f"build {row['build_s']:.3f}s  iterate {row['iterate_s']:.3f}s")
            else:
                print(f"  {name:8s} bound above engine limit")
        print()

    df = pd.DataFrame(rows)
    csv_path = output_dir / 'benchmark.csv'
    df.to_csv(csv_path, index=False)

    print("=" * 60)
    print("COMPLETE")
    print("=" * 60)
    print(f"\nTotal runtime: {time.time() - total_start:.1f}s")
    print(f"Results saved to: {csv_path.absolute()}")
    print()
    print(df.to_string(index=False))
    print()

    if check_agreement(df):
        print("✓ All engines agree")
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
