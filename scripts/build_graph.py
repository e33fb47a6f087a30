import argparse
import os
import sys
from pathlib import Path
from time import time
from typing import Dict

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.data_loading import load_accounts
from src.graph_construction import GraphBuilder, summarize_graph, write_summary
from src.graph_construction.patterns import detect_patterns, write_patterns
from src.utils.config import load_graph_config
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def main(config: Dict):

    records = load_accounts(config['input']['directory'], config['input'].get('categories'))

    builder = GraphBuilder(config['graph'])
    graph = builder(records)

    output_dir = config['output']['directory']
    os.makedirs(output_dir, exist_ok=True)

    graph_file = os.path.join(output_dir, config['output']['graph_file'])
    graph.to_json(graph_file)

    summary = summarize_graph(graph)
    write_summary(summary, os.path.join(output_dir, config['output']['summary_file']))

    patterns_config = config['patterns']
    if patterns_config['enabled']:
        patterns = detect_patterns(
            records,
            holding_period_days=patterns_config['holding_period_days'],
            tolerance_days=patterns_config['tolerance_days'],
        )
        write_patterns(patterns, os.path.join(output_dir, config['output']['patterns_file']))

    return graph_file


if __name__ == "__main__":

    EXPERIMENT = 'icp_accounts'

    parser = argparse.ArgumentParser()
    parser.add_argument('--config', type=str, help='Path to the graph config file.', default=f'experiments/{EXPERIMENT}/config/graph.yaml')
    parser.add_argument('--input_dir', type=str, help='Override the account collections directory.', default=None)
    parser.add_argument('--output_dir', type=str, help='Override the graph output directory.', default=None)
    parser.add_argument('--n_workers', type=int, help='Number of worker processes for the edge passes.', default=None)
    parser.add_argument('--quiet', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--debug', action='store_true', help='Also log skipped transactions and suppressed connectors.')
    parser.add_argument('--log_file', type=str, help='Also log to this file.', default=None)
    args = parser.parse_args()

    configure_logging(verbose=not args.quiet, debug=args.debug, log_file=args.log_file)

    config = load_graph_config(args.config)
    if args.input_dir is not None:
        config['input']['directory'] = args.input_dir
    if args.output_dir is not None:
        config['output']['directory'] = args.output_dir
    if args.n_workers is not None:
        config['graph']['n_workers'] = args.n_workers

    t = time()
    graph_file = main(config)
    t = time() - t
    logger.info(f'Graph written to {graph_file} in {t:.2f} seconds')
