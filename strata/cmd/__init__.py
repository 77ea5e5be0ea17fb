"""
strata-util subcommands
"""

# Author: Eric Kow
# License: BSD3

from . import (annotate,
               count,
               graph,
               typelist)

# at the time of this writing argparse doesn't support a way to group
# subcommands into sections, but maybe we can wait for it to grow such
# a feature, or write our own formatter class, or just abuse the command
# epilog
SUBCOMMAND_SECTIONS = [
    ('Processing', [
        annotate,
    ]),
    ('Querying', [
        typelist,
        count,
        graph,
    ]),
]

SUBCOMMANDS = []
for descr, section in SUBCOMMAND_SECTIONS:
    SUBCOMMANDS.extend(section)
