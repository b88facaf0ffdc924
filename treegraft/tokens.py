# License: BSD3

"""
Token identity space of a base corpus graph.

`TokenIndex` is built once per loaded graph and answers the one question
alignment needs: which node is token number `n` of document `d` in
corpus `c`?
"""

from collections import namedtuple

from frozendict import frozendict

from .errors import TokenOrdinalOutOfRangeError
from .graph import (ANNIS_NS, DEFAULT_NS, TOK, COVERAGE,
                    GraphStructureError, split_doc_path)


TOK_ANNO = 'tok_anno'
"""
Name of the segmentation ReM corpora use for the words of the
treebank (`default_ns::tok_anno`)
"""


class Token(namedtuple('Token', 'node corpus doc ordinal text annotations')):
    """
    A base graph token as seen by the merge engine.

    `node` is the graph node id, `ordinal` the 0-based position in the
    document, `annotations` a read-only mapping from `(ns, name)` to value
    """
    def __str__(self):
        return '%s/%s[%d] %s' % (self.corpus, self.doc, self.ordinal,
                                 self.text)


def _document_tokens(graph):
    """
    Map from document node id to the ids of the base tokens that are
    part of it (in order of creation)
    """
    doc_tokens = {}
    for node_id in graph.node_ids():
        if graph.is_token(node_id):
            doc = graph.document_of(node_id)
            if doc is None:
                raise GraphStructureError(
                    'token %s is not part of any document' %
                    graph.node_name(node_id))
            doc_tokens.setdefault(doc, []).append(node_id)
    return doc_tokens


def ordered_tokens(graph, doc_id, token_ids):
    """
    Base tokens of a document in text order.

    We only expect one text per document; anything else would make
    token ordinals ambiguous
    """
    chains = graph.token_chains(token_ids)
    if len(chains) > 1:
        raise GraphStructureError('document %s has %d token chains, '
                                  'expected one' % (graph.node_name(doc_id),
                                                    len(chains)))
    return chains[0] if chains else []


def segmentation_nodes(graph, tokens, segmentation):
    """
    Nodes annotated with `default_ns::<segmentation>` that cover the given
    tokens, in the order we first see them when walking along the tokens
    """
    result = []
    seen = set()
    for tok in tokens:
        for node in graph.incoming_any(tok, COVERAGE):
            if node in seen:
                continue
            if graph.node_anno(node, DEFAULT_NS, segmentation) is not None:
                seen.add(node)
                result.append(node)
    return result


class TokenIndex(object):
    """
    Lookup table from (corpus, document, ordinal) to `Token`

    Build it with `TokenIndex.build`
    """
    def __init__(self):
        self._tokens = {}
        self._counts = {}
        self._doc_nodes = {}

    @classmethod
    def build(cls, graph, segmentation=None):
        """
        Scan every document of the graph once.

        Parameters
        ----------
        graph : AnnotationGraph
            Base corpus graph
        segmentation : string, optional
            If set, the tokens are not the base tokens themselves but
            the segmentation nodes (`default_ns::<segmentation>`) that
            cover them, which is how corpora with several tokenisations
            expose their words. Their text is the segmentation value.

        Returns
        -------
        index : TokenIndex
        """
        index = cls()
        doc_tokens = _document_tokens(graph)
        for doc_id in graph.documents():
            corpus, doc = split_doc_path(graph.node_name(doc_id))
            tokens = ordered_tokens(graph, doc_id,
                                    doc_tokens.get(doc_id, []))
            if segmentation is None:
                nodes = tokens
                text_key = (ANNIS_NS, TOK)
            else:
                nodes = segmentation_nodes(graph, tokens, segmentation)
                text_key = (DEFAULT_NS, segmentation)
            index._counts.setdefault((corpus, doc), 0)
            index._doc_nodes[(corpus, doc)] = doc_id
            for ordinal, node in enumerate(nodes):
                annos = graph.node_annos(node)
                index._add(Token(node=node,
                                 corpus=corpus,
                                 doc=doc,
                                 ordinal=ordinal,
                                 text=annos.get(text_key),
                                 annotations=frozendict(annos)))
        return index

    def _add(self, token):
        key = (token.corpus, token.doc)
        count = self._counts.get(key, 0)
        if token.ordinal != count:
            raise ValueError('token ordinals must be contiguous: got %d, '
                             'expected %d' % (token.ordinal, count))
        self._tokens[key + (token.ordinal,)] = token
        self._counts[key] = count + 1

    def lookup(self, corpus, doc, ordinal):
        """
        Token at this position, or None if we know of no such document.

        Raises `TokenOrdinalOutOfRangeError` if the document exists but
        is too short
        """
        count = self._counts.get((corpus, doc))
        if count is None:
            return None
        if ordinal < 0 or ordinal >= count:
            raise TokenOrdinalOutOfRangeError(corpus, doc, ordinal, count)
        return self._tokens[(corpus, doc, ordinal)]

    def token_count(self, corpus, doc):
        "number of tokens in a document (0 if unknown)"
        return self._counts.get((corpus, doc), 0)

    def tokens(self, corpus, doc):
        "all tokens of a document in order"
        return [self._tokens[(corpus, doc, i)]
                for i in range(self.token_count(corpus, doc))]

    def document_node(self, corpus, doc):
        "graph node id of a document, or None if unknown"
        return self._doc_nodes.get((corpus, doc))

    def documents(self):
        "(corpus, doc) pairs, sorted"
        return sorted(self._counts)

    def __len__(self):
        return len(self._tokens)
