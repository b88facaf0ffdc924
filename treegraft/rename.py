# License: BSD3

"""
Renaming corpora on output.

Renaming is cosmetic: lookups against the base corpus always use the
original names, and the new name is only applied when the merged graph
is written out.
"""

from urllib.parse import quote

from .errors import InvalidPatternError


PLACEHOLDER = '%c'


def rename(name, pattern):
    """
    Substitute the corpus name for the placeholder in the pattern

    >>> rename('11-12_1-obd-PV-X', '%c_treebank')
    '11-12_1-obd-PV-X_treebank'
    """
    if PLACEHOLDER not in pattern:
        raise InvalidPatternError(pattern, PLACEHOLDER)
    return pattern.replace(PLACEHOLDER, name)


def check_pattern(pattern):
    """
    Rename pattern as an argparse type
    """
    # argparse reports ValueError/TypeError as a usage error
    if PLACEHOLDER not in pattern:
        raise ValueError('pattern must contain %s' % PLACEHOLDER)
    return pattern


def corpus_renamer(old, new):
    """
    Node name mapping for writing out corpus `old` as `new`: the corpus
    node itself and everything under it (`<old>/...`, with the corpus
    name URL-encoded) move; any other name is an error
    """
    old_prefix = quote(old, safe='') + '/'
    new_prefix = quote(new, safe='') + '/'

    def mapper(name):
        "new name of a node"
        if name == old:
            return new
        elif name == old_prefix[:-1]:
            return new_prefix[:-1]
        elif name.startswith(old_prefix):
            return new_prefix + name[len(old_prefix):]
        else:
            raise ValueError('node %r is not part of corpus %r' %
                             (name, old))
    return mapper
