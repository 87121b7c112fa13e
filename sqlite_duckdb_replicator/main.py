#!/usr/bin/env python3

import argparse
import logging
import os
import sys

from .config import Settings
from .errors import ReplicationError
from .replicator import ReplicationMode, Replicator


def set_logging_config(tags, log_level_str=None):
    """Configure logging to output only to stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]

    log_levels = {
        'critical': logging.CRITICAL,
        'error': logging.ERROR,
        'warning': logging.WARNING,
        'info': logging.INFO,
        'debug': logging.DEBUG,
    }

    log_level = log_levels.get(log_level_str)
    if log_level is None:
        logging.warning(f'Unknown log level {log_level_str}, setting info')
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=f'[{tags} %(asctime)s %(levelname)8s] %(message)s',
        handlers=handlers,
        force=True,
    )


def load_settings(args) -> Settings:
    config = Settings()
    if args.config and os.path.exists(args.config):
        config.load(args.config)
    elif args.config != 'config.yaml':
        raise Exception(f'config file {args.config} not found')
    else:
        config.apply_env_overrides()

    if args.source:
        config.sqlite.path = args.source
    if args.destination:
        config.duckdb.path = args.destination
    config.validate()
    return config


def remove_destination(path):
    for file_name in (path, path + '.wal'):
        if os.path.exists(file_name):
            logging.info(f'removing destination file {file_name} for a clean rebuild')
            os.remove(file_name)


def run_full_refresh(args, config: Settings):
    set_logging_config('full_refresh', log_level_str=config.log_level)
    if args.rebuild:
        remove_destination(config.duckdb.path)
    return Replicator(config, ReplicationMode.FULL).run()


def run_incremental_refresh(args, config: Settings):
    if not args.since:
        raise Exception('need to pass --since argument')
    set_logging_config('incremental_refresh', log_level_str=config.log_level)
    return Replicator(config, ReplicationMode.INCREMENTAL, watermark=args.since).run()


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument(
        'mode', help='run mode',
        type=str,
        choices=['full_refresh', 'incremental_refresh'])
    parser.add_argument('--config', help='config file path', default='config.yaml', type=str)
    parser.add_argument('--source', help='source sqlite database path, overrides config', type=str)
    parser.add_argument('--destination', help='destination duckdb database path, overrides config', type=str)
    parser.add_argument(
        '--since', type=str, default=None,
        help='watermark for incremental_refresh, rows with created_at or updated_at after it are upserted',
    )
    parser.add_argument(
        '--rebuild', action='store_true', default=False,
        help='delete the destination database file before a full refresh',
    )
    args = parser.parse_args(argv)

    config = load_settings(args)

    try:
        if args.mode == 'full_refresh':
            run_full_refresh(args, config)
        if args.mode == 'incremental_refresh':
            run_incremental_refresh(args, config)
    except ReplicationError as e:
        logging.error(f'replication failed: {e}')
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
