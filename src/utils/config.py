"""
Configuration loader with path auto-discovery and convention over configuration.
"""
from pathlib import Path
from typing import Dict, Optional
import yaml


DEFAULT_GRAPH_CONFIG = {
    'dust_threshold': 10_000_000,       # 0.1 token in ledger subunits
    'subunits_per_token': 100_000_000,
    'date_format': '%d/%m/%Y, %H:%M:%S',
    'include_hidden_transactions': False,
    'n_workers': 1,
}

DEFAULT_PATTERN_CONFIG = {
    'enabled': True,
    'holding_period_days': 42,
    'tolerance_days': 7,
}


def build_graph_paths(experiment_root: Path, config: Optional[Dict] = None) -> Dict:
    """
    Build input/output paths based on conventions.

    Args:
        experiment_root: Root directory of experiment
        config: Parsed config, whose explicit paths take precedence

    Returns:
        Dictionary with 'input' and 'output' sections
    """
    config = config or {}
    input_section = dict(config.get('input') or {})
    output_section = dict(config.get('output') or {})

    input_section.setdefault('directory', str(experiment_root / 'accounts'))
    output_section.setdefault('directory', str(experiment_root / 'graph'))
    output_section.setdefault('graph_file', 'graph.json')
    output_section.setdefault('summary_file', 'summary.json')
    output_section.setdefault('patterns_file', 'patterns.json')

    return {'input': input_section, 'output': output_section}


def load_graph_config(config_path: str) -> Dict:
    """
    Load graph construction configuration with auto-discovery and path construction.

    Convention over configuration:
    - Experiment root: Auto-detected from config path (../../ from config file)
    - Account collections: {experiment_root}/accounts/account_transactions_<category>.json
    - Graph output: {experiment_root}/graph/

    Args:
        config_path: Path to config YAML file (typically experiments/{name}/config/graph.yaml)

    Returns:
        Complete configuration dictionary with defaults and auto-constructed paths
    """
    config_path = Path(config_path)

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    # Config at: experiments/{name}/config/graph.yaml
    # Root is: experiments/{name}/
    experiment = config.get('experiment') or {}
    if experiment.get('root'):
        experiment_root = Path(experiment['root'])
    else:
        experiment_root = config_path.parent.parent

    graph = DEFAULT_GRAPH_CONFIG.copy()
    graph.update(config.get('graph') or {})
    config['graph'] = graph

    patterns = DEFAULT_PATTERN_CONFIG.copy()
    patterns.update(config.get('patterns') or {})
    config['patterns'] = patterns

    config.update(build_graph_paths(experiment_root, config))

    return config
