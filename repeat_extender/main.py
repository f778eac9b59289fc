#!/usr/bin/env python3
"""
Iterative program to extend the borders of a repeat consensus.

    repeat-extender -i repeat.fa -g genome.fa -o new_repeat.fa
"""

import sys
import logging
import argparse

from repeat_extender import __version__
from repeat_extender.config import ExtenderConfig
from repeat_extender.consensus_builder import CrossMatchLinupBuilder
from repeat_extender.controller import ExtensionStep, IterationController
from repeat_extender.decision import AutoDecisionProvider, ConsolePrompt
from repeat_extender.exceptions import ExtenderError
from repeat_extender.search_engines import create_search_engine
from repeat_extender.utils.genome_store import GenomeStore
from repeat_extender.utils.sequence_utils import read_consensus, write_fasta

logger = logging.getLogger('repeat_extender')

# 命令行参数名 -> 配置字段
OPTION_FIELDS = {
    'size': 'step_size',
    'engine': 'engine',
    'matrix': 'matrix',
    'score': 'min_score',
    'numseqs': 'max_seqs',
    'minseqs': 'min_seqs',
    'minlen': 'min_len',
    'div': 'divergence',
    'maxn': 'max_n',
    'win': 'window',
    'minscore': 'cm_minscore',
    'minmatch': 'cm_minmatch',
    'temp': 'temp_prefix',
}


def setup_logging(verbose=False, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, delay=True))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='[%(asctime)s] %(levelname)s: %(message)s',
        handlers=handlers,
    )


def build_parser():
    defaults = ExtenderConfig()
    parser = argparse.ArgumentParser(
        prog='repeat-extender',
        description="Iteratively extend the 5' and 3' borders of a repeat consensus"
    )

    # 必需参数
    parser.add_argument('-i', '--in', dest='input', required=True,
                        help='Consensus FASTA')
    parser.add_argument('-g', '--genome', required=True,
                        help='Genome FASTA')
    parser.add_argument('-o', '--out', required=True,
                        help='Output FASTA')

    # 可选参数
    parser.add_argument('-s', '--size', type=int,
                        help=f'Step size per iteration (default: {defaults.step_size})')
    parser.add_argument('-e', '--engine', choices=['rmblast', 'wublast'],
                        help=f'Alignment engine (default: {defaults.engine})')
    parser.add_argument('-x', '--matrix',
                        help=f'Score matrix (default: {defaults.matrix})')
    parser.add_argument('-c', '--score', type=int,
                        help=f'Minimal hit score (default: {defaults.min_score})')
    parser.add_argument('-n', '--numseqs', type=int,
                        help=f'Maximal number of sequences to try extending (default: {defaults.max_seqs})')
    parser.add_argument('-m', '--minseqs', type=int,
                        help=f'Minimal number of sequences to continue extending (default: {defaults.min_seqs})')
    parser.add_argument('-l', '--minlen', type=int,
                        help=f'Minimal length of sequences (default: {defaults.min_len})')
    parser.add_argument('-d', '--div', type=int,
                        help=f'Divergence level (14,18,20,25) (default: {defaults.divergence})')
    parser.add_argument('-z', '--maxn', type=int,
                        help=f'Maximal number of no-bases in extension (default: {defaults.max_n})')
    parser.add_argument('-w', '--win', type=int,
                        help=f'Extension window (default: {defaults.window})')
    parser.add_argument('--minscore', type=int,
                        help=f'Cross_match minscore (default: {defaults.cm_minscore})')
    parser.add_argument('--minmatch', type=int,
                        help=f'Cross_match minmatch (default: {defaults.cm_minmatch})')
    parser.add_argument('-t', '--temp',
                        help=f'Temporary file names (default: {defaults.temp_prefix})')
    parser.add_argument('-a', '--auto', action='store_true',
                        help='Run auto mode (non-interactive)')
    parser.add_argument('--no3p', action='store_true',
                        help="Don't extend to 3'")
    parser.add_argument('--no5p', action='store_true',
                        help="Don't extend to 5'")
    parser.add_argument('--config',
                        help='Configuration file (JSON)')
    parser.add_argument('--log-file',
                        help='Also write the log to this file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose mode on')
    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {__version__}')
    return parser


def config_from_args(args) -> ExtenderConfig:
    """加载或创建配置，命令行显式给出的参数优先"""
    config = ExtenderConfig.load(args.config) if args.config else ExtenderConfig()
    for option, name in OPTION_FIELDS.items():
        value = getattr(args, option)
        if value is not None:
            setattr(config, name, value)
    for flag in ('auto', 'no3p', 'no5p'):
        if getattr(args, flag):
            setattr(config, flag, True)
    return config.validate()


def engine_factory(genome_file):
    def factory(config):
        engine = create_search_engine(config)
        engine.ensure_index(genome_file)
        return engine
    return factory


def run(args):
    config = config_from_args(args)
    logger.debug(f"Configuration: {config}")

    header, consensus = read_consensus(args.input)
    logger.info(f"Consensus {header}: {len(consensus)} bp")

    make_engine = engine_factory(args.genome)
    engine = make_engine(config)
    genome = GenomeStore.from_fasta(args.genome)

    step = ExtensionStep(config, engine, genome, args.genome, CrossMatchLinupBuilder(config))
    decisions = AutoDecisionProvider() if config.auto else ConsolePrompt()
    controller = IterationController(config, step, decisions, engine_factory=make_engine)
    final = controller.extend(consensus)

    write_fasta(f"{header} | extended", final, args.out)
    logger.info(f"Extended {len(consensus)} bp -> {len(final)} bp in "
                f"{controller.iteration} iterations, written to {args.out}")
    return final


def main(argv=None):
    """命令行接口"""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    try:
        run(args)
    except ExtenderError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
