# Author: Eric Kow
# License: BSD3

"""
Visualise the relations between annotations

Writes one dot file per document (skipping those without
relations), and runs graphviz on them if asked to.
"""

import sys

from strata.graph import DotGraph

from .args import (add_usual_input_args, add_usual_output_args,
                   announce_output_dir, get_output_dir, read_corpus,
                   write_dot_graph)


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    add_usual_input_args(parser)
    add_usual_output_args(parser)
    parser.add_argument('--relation', '-r', dest='relations',
                        action='append', default=None, metavar='TYPE',
                        help='only show relations of this type '
                        '(can be repeated)')
    parser.add_argument('--draw', action='store_true',
                        help='run graphviz dot on each graph')
    parser.set_defaults(func=main)


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    corpus = read_corpus(args)
    output_dir = get_output_dir(args)
    for doc in corpus:
        gra = doc.relation_graph(args.relations)
        dot_gra = DotGraph(gra)
        if dot_gra.get_nodes():
            write_dot_graph(doc.id, output_dir, dot_gra,
                            run_graphviz=args.draw)
        else:
            print("Skipping %s (empty graph)" % doc.id, file=sys.stderr)
    announce_output_dir(output_dir)
