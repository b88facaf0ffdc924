# License: BSD3

"""
Resolving syntax terminals against the base corpus tokens.

A terminal refers to token number `n` of its document; we look it up in
the `TokenIndex` and, optionally, compare a few annotations the two
sides have in common, which catches an annotation source and base
corpus that tokenised the text differently.
"""

from collections import namedtuple
import warnings

from .errors import (AnnotationMismatchError, TokenOrdinalOutOfRangeError,
                     UnresolvedTerminalError)
from .graph import NODE_NAME_KEY


ANNOTATION_NS = 'annotation'

REM_SANITY_KEYS = [('INFL', (ANNOTATION_NS, 'inflection')),
                   ('LEMMA', (ANNOTATION_NS, 'lemma')),
                   ('WORD', (ANNOTATION_NS, 'norm')),
                   ('POS', (ANNOTATION_NS, 'pos'))]
"""
(terminal feature, base token annotation) pairs that should agree in
ReM corpora
"""


class AliasingWarning(UserWarning):
    "Several terminals resolve to the same base token"
    pass


Alias = namedtuple('Alias', 'token terminals')


def sanitize_anno(value):
    """
    Base corpus annotation value the way it is exported to the treebank:
    `--` stands for no value, surrounding whitespace is dropped and `#`
    becomes `-`
    """
    if value is None or value == '--':
        return None
    return value.strip().replace('#', '-')


def _check_annotations(terminal, token, sanity_keys, graph_name):
    for feature, (ns, name) in sanity_keys:
        expected = terminal.features.get(feature)
        if expected is not None:
            expected = expected.replace('&quot;', '"')
        actual = sanitize_anno(token.annotations.get((ns, name)))
        if expected != actual:
            raise AnnotationMismatchError(terminal.iri, graph_name,
                                          '%s::%s' % (ns, name),
                                          expected, actual)


class ResolvedForest(object):
    """
    A forest whose terminals all have a base token.

    :param forest: the `Forest`
    :param tokens: dict from terminal IRI to `Token`
    :param aliased: list of `Alias` (base tokens claimed by more than
        one terminal)
    :param doc_node: graph node id of the document (None if the base
        corpus does not know it)
    """
    def __init__(self, forest, tokens, aliased=None, doc_node=None):
        self.forest = forest
        self.tokens = tokens
        self.aliased = aliased or []
        self.doc_node = doc_node

    @property
    def key(self):
        "document of the forest"
        return self.forest.key

    def token(self, terminal):
        "base token of a terminal"
        return self.tokens[terminal.iri]


def resolve(forest, index, sanity_keys=()):
    """
    Find the base token of every terminal.

    Parameters
    ----------
    forest : Forest
    index : TokenIndex
    sanity_keys : list of (string, (string, string)), optional
        Terminal features and the base annotations they must agree
        with (see `REM_SANITY_KEYS`)

    Returns
    -------
    resolved : ResolvedForest

    Raises
    ------
    UnresolvedTerminalError
        a terminal whose document is unknown or whose ordinal is out
        of range
    AnnotationMismatchError
        a sanity check failed
    """
    tokens = {}
    claims = {}
    for terminal in forest.terminals:
        ref = terminal.ref
        try:
            token = index.lookup(ref.corpus, ref.doc, ref.ordinal)
        except TokenOrdinalOutOfRangeError as err:
            raise UnresolvedTerminalError(ref.iri, ref.corpus, ref.doc,
                                          ref.ordinal, str(err))
        if token is None:
            raise UnresolvedTerminalError(ref.iri, ref.corpus, ref.doc,
                                          ref.ordinal, 'unknown document')
        if sanity_keys:
            _check_annotations(terminal, token, sanity_keys,
                               token.annotations.get(NODE_NAME_KEY,
                                                     str(token.node)))
        tokens[ref.iri] = token
        claims.setdefault(token.node, []).append(terminal)

    aliased = []
    for terminal in forest.terminals:
        token = tokens[terminal.iri]
        claimants = claims.get(token.node)
        if claimants and len(claimants) > 1:
            aliased.append(Alias(token, claimants))
            del claims[token.node]
    for alias in aliased:
        warnings.warn('%s: token %s is claimed by %d terminals: %s' %
                      (forest.key, alias.token, len(alias.terminals),
                       ', '.join(t.iri for t in alias.terminals)),
                      AliasingWarning)
    key = forest.key
    return ResolvedForest(forest, tokens, aliased,
                          doc_node=index.document_node(key.corpus, key.doc))
