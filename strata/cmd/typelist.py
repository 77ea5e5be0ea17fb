# Author: Eric Kow
# License: BSD3

"""
List the annotation, attribute and relation types known so far

Only the predefined types are known unless some module defining new
ones has been imported (see --load).
"""

import importlib

from tabulate import tabulate

from strata.types import FAMILIES

NAME = 'types'


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    parser.add_argument('--family', choices=sorted(FAMILIES),
                        action='append', default=[],
                        help='only list types of this family '
                        '(can be repeated)')
    parser.add_argument('--load', metavar='MODULE', action='append',
                        default=[],
                        help='import a module (defining types) first')
    parser.set_defaults(func=main)


def _row(atype):
    "table row for a type"
    parent = getattr(atype, 'parent', None)
    if hasattr(atype, 'declared_attributes'):
        details = ', '.join(x.name for x in
                            sorted(atype.declared_attributes()))
    else:
        vtype = getattr(atype, 'value_type', None)
        details = vtype.__name__ if vtype is not None else ''
    return (atype.family, atype.name,
            str(parent) if parent is not None else '', details)


def type_table(families):
    """
    Table of the types in the given families
    """
    rows = []
    for family in families:
        rows.extend(_row(t) for t in sorted(FAMILIES[family].values()))
    return tabulate(rows, headers=['family', 'name', 'parent',
                                   'attributes/value'])


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    for module in args.load:
        importlib.import_module(module)
    families = args.family or ['annotation', 'attribute', 'relation']
    print(type_table(families))
