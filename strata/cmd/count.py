# Author: Eric Kow
# License: BSD3

"""
Show number of annotations of each type, per document
"""

from tabulate import tabulate

from strata.util import parse_type_list

from .args import add_usual_input_args, read_corpus


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    add_usual_input_args(parser)
    parser.add_argument('--type', '-t', dest='types', action='append',
                        default=[], metavar='TYPE',
                        help='only count this type (can be repeated)')
    parser.add_argument('--summary', action='store_true',
                        help='only show totals and averages')
    parser.set_defaults(func=main)


def report(counts, summary=False):
    """
    Tables for a (document x type) count table

    :type counts: pandas.DataFrame
    """
    totals = counts.sum()
    parts = []
    if not summary:
        parts.append(tabulate(counts, headers='keys'))
        parts.append('')
    parts.append(tabulate([('total',) + tuple(totals),
                           ('mean',) + tuple(counts.mean())],
                          headers=[''] + list(counts.columns),
                          floatfmt='.2f'))
    return '\n'.join(parts)


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    corpus = read_corpus(args)
    types = parse_type_list(args.types) if args.types else None
    print(report(corpus.annotation_counts(types), summary=args.summary))
