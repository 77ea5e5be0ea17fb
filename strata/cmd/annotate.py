# Author: Eric Kow
# License: BSD3

"""
Annotate a corpus with the default annotators

Annotated documents are saved in the json_opl format.
"""

import os
import sys

from tabulate import tabulate

from strata.corpus.formats import JSON_OPL
from strata.external.annotators import register_defaults
from strata.processing import AnnotatorCache, AnnotatorRegistry, Pipeline
from strata.types import ConfigurationError
from strata.util import parse_type_list

from .args import (add_usual_input_args, add_usual_output_args,
                   announce_output_dir, get_output_dir, read_corpus)


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    add_usual_input_args(parser)
    add_usual_output_args(parser)
    parser.add_argument('--type', '-t', dest='types', action='append',
                        default=[], metavar='TYPE',
                        help='type to annotate (can be repeated, or '
                        'comma separated; default: token,sentence)')
    parser.add_argument('--workers', '-j', type=int, default=None,
                        help='worker threads (default: one per CPU)')
    parser.add_argument('--queue-size', type=int, default=10000,
                        help='documents waiting to be processed '
                        '(default: %(default)s)')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='do not report progress')
    parser.set_defaults(func=main)


def stats_table(pipeline):
    """
    Timing statistics for a pipeline run
    """
    rows = [('documents', pipeline.documents_processed),
            ('time', pipeline.total_time_processing()),
            ('documents/s', '%.2f' % pipeline.documents_per_second())]
    return tabulate(rows)


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    types = parse_type_list(args.types or ['token,sentence'])
    cache = AnnotatorCache(register_defaults(AnnotatorRegistry()))
    corpus = read_corpus(args)
    output_dir = get_output_dir(args)
    pipeline = Pipeline(types,
                        num_workers=args.workers,
                        queue_size=args.queue_size,
                        cache=cache,
                        verbose=not args.quiet)
    try:
        result = pipeline.process(corpus)
    except ConfigurationError as err:
        sys.exit(str(err))
    result.write(JSON_OPL, os.path.join(output_dir,
                                        'part-00000' + JSON_OPL.extension))
    print(stats_table(pipeline))
    announce_output_dir(output_dir)
