# License: BSD3

"""
Draw the syntax trees of Turtle files (Graphviz dot)

One dot file per Turtle file, named after its document.
"""

import os
import sys

from treegraft.corpus import DocKey
from treegraft.draw import write_dot_tree
from treegraft.tree import assemble
from treegraft.turtle import TripleStream, group_by_subject


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    parser.add_argument('inputs', metavar='TTL_FILE', nargs='+',
                        help='Turtle file(s)')
    parser.add_argument('--output', metavar='DIR', default='.',
                        help='output directory (default: %(default)s)')
    parser.add_argument('--corpus', default='corpus',
                        help='corpus name to use in node references '
                        '(default: %(default)s)')
    parser.set_defaults(func=main)


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    for path in args.inputs:
        doc = os.path.splitext(os.path.basename(path))[0]
        key = DocKey(args.corpus, doc)
        grouped = group_by_subject(TripleStream.from_file(path))
        forest = assemble(grouped, key)
        if not forest.terminals:
            print("Skipping %s (no words)" % path, file=sys.stderr)
            continue
        dot_file = write_dot_tree(args.output, forest)
        print('%s: %s' % (forest, dot_file), file=sys.stderr)
