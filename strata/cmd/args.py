# Author: Eric Kow
# License: BSD3

"""
Command line options
"""

import os
import re
import subprocess
import sys
import tempfile

import strata.corpus
from strata.corpus import CorpusType
from strata.corpus.formats import FORMATS


def add_usual_input_args(parser):
    """
    Augment a subcommand argparser with typical input arguments
    (corpus path, format and how to hold it)
    """
    parser.add_argument('corpus', metavar='PATH',
                        help='corpus file or directory')
    parser.add_argument('--format', '-f', default='json_opl',
                        choices=sorted(FORMATS),
                        help='corpus format (default: %(default)s)')
    parser.add_argument('--corpus-type', default='off_heap',
                        choices=[x.name.lower() for x in CorpusType],
                        help='how to hold the corpus (default: %(default)s)')


def add_usual_output_args(parser):
    """
    Augment a subcommand argparser with typical output arguments
    """
    parser.add_argument('--output', '-o', metavar='DIR',
                        help='output directory (default: a fresh '
                        'temporary directory)')


def read_corpus(args):
    """
    Read the corpus specified by the command line arguments
    """
    if not os.path.exists(args.corpus):
        sys.exit("No such corpus: {corpus}".format(corpus=args.corpus))
    return strata.corpus.read(args.corpus, args.format,
                              CorpusType[args.corpus_type.upper()])


def get_output_dir(args):
    """Return the output dir specified or inferred from command
    line args.

    If `--output` is given explicitly, we'll just use/create that;
    otherwise we make a temporary directory. Later on, you'll
    probably want to call `announce_output_dir`.
    """
    if args.output:
        if os.path.isfile(args.output):
            oops = "Sorry, %s already exists and is not a directory" %\
                args.output
            sys.exit(oops)
        elif not os.path.isdir(args.output):
            os.makedirs(args.output)
        return args.output
    else:
        return tempfile.mkdtemp()


def announce_output_dir(output_dir):
    """
    Tell the user where we saved the output
    """
    print("Output files written to", output_dir, file=sys.stderr)


def safe_filename(name):
    """
    File name (no directory parts, no shell metacharacters) for a
    document id, which may come from arbitrary corpus data
    """
    res = re.sub(r'[^\w.-]', '_', str(name)).lstrip('.')
    return res or '_'


def write_dot_graph(doc_id, output_dir, dot_graph, run_graphviz=True):
    """
    Write a dot graph and possibly run graphviz on it

    Return the path to the dot file
    """
    basename = safe_filename(doc_id)
    dot_file = os.path.join(output_dir, '%s.dot' % basename)
    svg_file = os.path.join(output_dir, '%s.svg' % basename)
    with open(dot_file, 'w', encoding='utf-8') as fout:
        print(dot_graph.to_string(), file=fout)
    if run_graphviz:
        print("Creating %s" % svg_file, file=sys.stderr)
        try:
            subprocess.call(['dot', '-T', 'svg', '-o', svg_file, dot_file])
        except OSError as oops:
            print("Couldn't run graphviz. (%s)" % oops, file=sys.stderr)
    return dot_file
