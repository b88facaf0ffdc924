# License: BSD3

"""
Merge a treebank (Turtle files) into ANNIS corpora (GraphML zip)

Every document of every corpus in the input archive gets the syntax
trees of its Turtle file (if there is one) as a new layer.
"""

import os
import sys

from treegraft.align import REM_SANITY_KEYS
from treegraft.errors import ConfigError
from treegraft.merge import MergeSettings
from treegraft.pipeline import ABORT, SKIP, Settings, run
from treegraft.rename import check_pattern
from treegraft.storage import DISK, MEMORY
from treegraft.tokens import TOK_ANNO


def default_output(input_zip):
    """
    `foo.zip` -> `foo.out.zip`
    """
    stem, ext = os.path.splitext(input_zip)
    return stem + '.out' + (ext or '.zip')


def config_argparser(parser):
    """
    Subcommand flags.

    You should create and pass in the subparser to which the flags
    are to be added.
    """
    parser.add_argument('input', metavar='INPUT_ZIP',
                        help='ANNIS corpora (GraphML zip)')
    parser.add_argument('treebank', metavar='TTL_DIR',
                        help='directory of Turtle files')
    parser.add_argument('--output', metavar='ZIP',
                        help='output archive (default: INPUT.out.zip)')
    parser.add_argument('--rename', metavar='PATTERN', type=check_pattern,
                        help='rename corpora, %%c stands for the old name '
                        '(eg. %%c_treebank)')
    parser.add_argument('--layer', default='treebank',
                        help='layer of the new nodes and edges '
                        '(default: %(default)s)')
    parser.add_argument('--tree-anno', default='tree',
                        help='annotation holding the categories '
                        '(default: %(default)s)')
    parser.add_argument('--tree-display', default='tree',
                        help='display name of the tree visualizer '
                        '(default: %(default)s)')
    parser.add_argument('--iri-anno', metavar='NAME',
                        help='annotate nodes with the IRI they come from')
    parser.add_argument('--no-iri-terminals', action='store_true',
                        help='with --iri-anno: leave the tokens alone')
    parser.add_argument('--segmentation', default=TOK_ANNO,
                        help='segmentation holding the treebank words '
                        '(default: %(default)s)')
    parser.add_argument('--no-sanity-check', action='store_true',
                        help='do not compare word and token annotations')
    parser.add_argument('--skip-errors', action='store_true',
                        help='leave out documents with bad Turtle or '
                        'alignment problems instead of stopping')
    parser.add_argument('--in-memory', action='store_true',
                        help='keep graphs in memory (faster, but needs '
                        'more of it)')
    parser.add_argument('--quiet', action='store_true',
                        help='no progress reports')
    parser.set_defaults(func=main)


def _settings(args):
    "merge settings from the command line"
    merge_settings = MergeSettings(layer=args.layer,
                                   tree_anno=args.tree_anno,
                                   tree_display=args.tree_display,
                                   iri_anno=args.iri_anno,
                                   tag_terminals=not args.no_iri_terminals)
    return Settings(merge=merge_settings,
                    rename=args.rename,
                    storage=MEMORY if args.in_memory else DISK,
                    segmentation=args.segmentation or None,
                    sanity_keys=(() if args.no_sanity_check else
                                 REM_SANITY_KEYS),
                    on_error=SKIP if args.skip_errors else ABORT,
                    verbose=not args.quiet)


def main(args):
    """
    Subcommand main.

    You shouldn't need to call this yourself if you're using
    `config_argparser`
    """
    try:
        settings = _settings(args)
    except ConfigError as err:
        sys.exit(str(err))
    output = args.output or default_output(args.input)
    summary = run(args.input, args.treebank, output, settings)
    print(summary, file=sys.stderr)
    print('Merged corpora written to %s' % output, file=sys.stderr)
