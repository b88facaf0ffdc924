# -*- coding: utf-8 -*-
#
# License: BSD3

"""
Syntax forests assembled from Turtle triples.

A treebank unit describes words (terminals), constituents
(non-terminals, ie. anything with a category) and dominance between
them. `assemble` turns the subject-grouped triples of one document into
a `Forest`: a list of root `SyntaxTree` (an NLTK tree whose leaves are
`Terminal`) plus the document's terminals in word order.

This module only checks that the structure is a forest; whether the
terminals actually correspond to tokens of the base corpus is the
business of `treegraft.align`.
"""

from collections import OrderedDict, namedtuple
import os
import warnings

import nltk.tree
from pygraph.algorithms.cycles import find_cycle
from pygraph.classes.digraph import digraph

from .errors import (DanglingReferenceError, DuplicateLocalIdError,
                     MultipleParentsError, CycleError,
                     UnorderedTerminalError)
from .turtle import CONLL, NIF, POWLA, RDF_TYPE, Literal, is_iri


class TreeVocabulary(object):
    """
    Which predicates and classes carry the tree structure

    :param word_class: class of terminal subjects (via `rdf:type`)
    :param sentence_class: class of sentence subjects
    :param next_word: word to following word in the same sentence
    :param next_sentence: sentence to following sentence
    :param word_sentence: word to the sentence it belongs to
    :param parent: child to parent dominance
    :param child: parent to child dominance
    :param next_sibling: node to its following sibling (explicit order)
    :param category: category label of non-terminals
    :param features: dict from feature name to predicate, for the
        annotations we keep on terminals
    """
    def __init__(self, word_class, sentence_class,
                 next_word, next_sentence, word_sentence,
                 parent, child, next_sibling, category, features):
        self.word_class = word_class
        self.sentence_class = sentence_class
        self.next_word = next_word
        self.next_sentence = next_sentence
        self.word_sentence = word_sentence
        self.parent = parent
        self.child = child
        self.next_sibling = next_sibling
        self.category = category
        self.features = features


REM_VOCABULARY = TreeVocabulary(
    word_class=NIF + 'Word',
    sentence_class=NIF + 'Sentence',
    next_word=NIF + 'nextWord',
    next_sentence=NIF + 'nextSentence',
    word_sentence=CONLL + 'HEAD',
    parent=POWLA + 'hasParent',
    child=POWLA + 'hasChild',
    next_sibling=POWLA + 'next',
    category=CONLL + 'CAT',
    features=OrderedDict([('INFL', CONLL + 'INFL'),
                          ('LEMMA', CONLL + 'LEMMA'),
                          ('POS', CONLL + 'POS'),
                          ('WORD', CONLL + 'WORD')]))
"""
Conventions of the ReM treebank exports (NIF words and sentences,
POWLA dominance, CoNLL categories and features)
"""


class PrunedNodeWarning(UserWarning):
    "A constituent that dominates no word was dropped"
    pass


# ---------------------------------------------------------------------
# nodes
# ---------------------------------------------------------------------

class ForeignRef(namedtuple('ForeignRef', 'iri corpus doc local ordinal')):
    """
    Where a syntax node comes from: its IRI in the annotation source,
    decomposed into corpus, document and local id. Terminals also
    have an ordinal (their position in the document's word order);
    for non-terminals it is None
    """
    def __str__(self):
        return self.iri


def unit_base(iris):
    """
    Longest prefix shared by the IRIs of a unit, cut back to (and
    including) its last `/` or `#`
    """
    prefix = os.path.commonprefix(list(iris))
    cut = max(prefix.rfind('/'), prefix.rfind('#'))
    return prefix[:cut + 1]


def local_name(iri, base=None):
    """
    Local id of an IRI: what follows `base` if the IRI extends it, else
    the last segment (after the last `/` or `#`).

    `%`, `/` and `#` are URL-encoded, so that different IRIs under the
    same base never share a local id, and the id can go into a node name
    """
    if base and iri.startswith(base) and len(iri) > len(base):
        local = iri[len(base):]
    else:
        cut = max(iri.rfind('/'), iri.rfind('#'))
        local = iri[cut + 1:] if cut >= 0 else iri
    return local.replace('%', '%25').replace('/', '%2F').replace('#', '%23')


class Terminal(object):
    """
    A word of the annotation source. It will be attached to an existing
    token of the base corpus rather than creating a node of its own
    """
    def __init__(self, ref, features=None):
        self.ref = ref
        self.features = features or {}

    @property
    def iri(self):
        "IRI in the annotation source"
        return self.ref.iri

    @property
    def ordinal(self):
        "position in the document"
        return self.ref.ordinal

    def __repr__(self):
        word = self.features.get('WORD')
        return 'Terminal(%d%s)' % (self.ordinal,
                                   '' if word is None else ' ' + word)

    def __str__(self):
        word = self.features.get('WORD')
        return '%s' % (self.ordinal if word is None else word)


class SyntaxTree(nltk.tree.Tree):
    """
    A constituent: an NLTK tree labelled with the category, whose leaves
    are `Terminal` objects, and which remembers its foreign reference
    """
    def __init__(self, category, children, ref=None, features=None):
        nltk.tree.Tree.__init__(self, category, children)
        self.ref = ref
        self.features = features or {}

    @property
    def category(self):
        "category label"
        return self.label()

    @property
    def iri(self):
        "IRI in the annotation source"
        return self.ref.iri if self.ref else None


class Forest(object):
    """
    All syntax trees of a document.

    :param key: the document (see `treegraft.corpus.DocKey`)
    :param roots: root `SyntaxTree` objects in source order
    :param terminals: every `Terminal` of the document, in word order
        (including words that no tree dominates)
    """
    def __init__(self, key, roots, terminals):
        self.key = key
        self.roots = roots
        self.terminals = terminals

    def nonterminals(self):
        "every constituent, roots first, pre-order"
        return [x for root in self.roots for x in preorder(root)]

    def __str__(self):
        return '%s: %d trees, %d words' % (self.key, len(self.roots),
                                           len(self.terminals))


def preorder(tree):
    """
    Constituents of a tree in pre-order, walked with an explicit stack
    (tree depth is not bounded by the recursion limit)
    """
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed([x for x in node
                               if isinstance(x, SyntaxTree)]))


def terminals_of(tree):
    "terminals under a constituent, left to right"
    result = []
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, SyntaxTree):
            stack.extend(reversed(node))
        else:
            result.append(node)
    return result


# ---------------------------------------------------------------------
# assembly
# ---------------------------------------------------------------------

class _Facts(object):
    """
    What the triples of one unit say, sorted by kind
    """
    def __init__(self, grouped, vocabulary):
        voc = vocabulary
        features = dict((v, k) for k, v in voc.features.items())
        self.subjects = grouped
        self.types = {}
        self.categories = OrderedDict()
        self.features = {}
        self.next_word = {}
        self.next_sentence = {}
        self.word_sentence = {}
        self.next_sibling = {}
        self.dominance = []  # (parent, child, subject)
        for subj, pairs in grouped.items():
            for pred, obj in pairs:
                if pred == RDF_TYPE:
                    self.types.setdefault(subj, set()).add(obj)
                elif pred == voc.category:
                    self.categories[subj] = str(obj)
                elif pred == voc.parent:
                    self.dominance.append((obj, subj, subj))
                elif pred == voc.child:
                    self.dominance.append((subj, obj, subj))
                elif pred == voc.next_word:
                    self.next_word[subj] = obj
                elif pred == voc.next_sentence:
                    self.next_sentence[subj] = obj
                elif pred == voc.word_sentence:
                    self.word_sentence[subj] = obj
                elif pred == voc.next_sibling:
                    self.next_sibling[subj] = obj
                elif pred in features:
                    self.features.setdefault(subj, {})[features[pred]] =\
                        str(obj)

    def of_class(self, cls):
        "subjects of the given class, in source order"
        return [x for x in self.subjects if cls in self.types.get(x, ())]


def _follow(start, successor, members, seen):
    """
    Walk a chain from `start` while we stay within `members`, never
    visiting anything twice
    """
    chain = []
    node = start
    while node is not None and node in members and node not in seen:
        seen.add(node)
        chain.append(node)
        node = successor.get(node)
    return chain


def _chain_order(nodes, successor, seen):
    """
    Nodes in chain order: each chain starts at a node whose predecessor
    (if any) is not among the nodes; chains come in source order of
    their starting node
    """
    members = set(nodes)
    targets = set(successor[x] for x in nodes
                  if successor.get(x) in members)
    result = []
    for start in nodes:
        if start not in targets:
            result.extend(_follow(start, successor, members, seen))
    return result


def word_order(facts, words, vocabulary):
    """
    Words of a unit in document order: sentences along the sentence
    chain, and words along the word chain within each sentence.
    Without any chain information, we fall back to source order.

    Words we could not reach are not returned (the caller decides what
    to do about them)
    """
    if not (facts.next_word or facts.next_sentence or facts.word_sentence):
        return list(words)
    seen = set()
    sentences = facts.of_class(vocabulary.sentence_class)
    if not sentences or not facts.word_sentence:
        return _chain_order(words, facts.next_word, seen)
    ordered = []
    by_sentence = OrderedDict()
    for word in words:
        by_sentence.setdefault(facts.word_sentence.get(word), []).append(word)
    for sentence in _chain_order(sentences, facts.next_sentence, set()):
        ordered.extend(_chain_order(by_sentence.get(sentence, []),
                                    facts.next_word, seen))
    return ordered


def _order_siblings(kids, next_sibling):
    """
    Explicit sibling order if the siblings are chained, else the order
    we were given
    """
    kid_set = set(kids)
    if not any(next_sibling.get(k) in kid_set for k in kids):
        return kids
    ordered = _chain_order(kids, next_sibling, set())
    placed = set(ordered)
    return ordered + [k for k in kids if k not in placed]


def _check_acyclic(key, parents):
    """
    Raise `CycleError` if following parents can lead back to the start
    """
    grph = digraph()
    nodes = set(parents) | set(parents.values())
    grph.add_nodes(list(nodes))
    for child, parent in parents.items():
        grph.add_edge((parent, child))
    cycle = find_cycle(grph)
    if cycle:
        raise CycleError(key, [str(x) for x in cycle])


def assemble(grouped, key, vocabulary=REM_VOCABULARY):
    """
    Build the syntax forest of one document.

    Parameters
    ----------
    grouped : dict
        Triples grouped by subject (see
        `treegraft.turtle.group_by_subject`)
    key : DocKey
        Document the unit describes; used for foreign references and
        error messages
    vocabulary : TreeVocabulary, optional

    Returns
    -------
    forest : Forest

    Raises
    ------
    DanglingReferenceError
        dominance to or from a subject the unit does not describe
    MultipleParentsError
        a node with two different parents
    CycleError
        a dominance cycle
    UnorderedTerminalError
        a word that is not on the word chain
    DuplicateLocalIdError
        two constituents with the same local id
    """
    facts = _Facts(grouped, vocabulary)

    # terminals
    words = facts.of_class(vocabulary.word_class)
    ordered = word_order(facts, words, vocabulary)
    if len(ordered) != len(words):
        placed = set(ordered)
        missing = [w for w in words if w not in placed]
        raise UnorderedTerminalError(key, missing[0])
    word_set = set(words)
    constituent_list = [x for x in facts.categories if x not in word_set]
    base = unit_base(x for x in words + constituent_list if is_iri(x))
    terminals = OrderedDict()
    for ordinal, word in enumerate(ordered):
        ref = ForeignRef(word, key.corpus, key.doc, local_name(word, base),
                         ordinal)
        terminals[word] = Terminal(ref, facts.features.get(word, {}))

    # dominance
    constituents = set(constituent_list)
    parents = OrderedDict()
    children = OrderedDict()
    for parent, child, subject in facts.dominance:
        other = child if subject == parent else parent
        if isinstance(other, Literal) or other not in grouped:
            raise DanglingReferenceError(key, subject, other)
        if parent not in constituents or\
                (child not in constituents and child not in terminals):
            # eg. sentence nodes, which have no category
            continue
        if child in parents:
            if parents[child] != parent:
                raise MultipleParentsError(key, child,
                                           [parents[child], parent])
            continue
        parents[child] = parent
        children.setdefault(parent, []).append(child)
    _check_acyclic(key, parents)

    pruned = []
    local_ids = {}

    def mk_tree(node, kids):
        "tree for a constituent, or None if it dominates no word"
        if not kids:
            pruned.append(node)
            return None
        local = local_name(node, base)
        if local_ids.setdefault(local, node) != node:
            raise DuplicateLocalIdError(key, local, [local_ids[local], node])
        ref = ForeignRef(node, key.corpus, key.doc, local, None)
        return SyntaxTree(facts.categories[node], kids, ref=ref,
                          features=facts.features.get(node, {}))

    def build(root):
        "bottom-up, with a stack of (node, pending children, built kids)"
        def frame(node):
            kids = _order_siblings(children.get(node, []), facts.next_sibling)
            return (node, iter(kids), [])

        stack = [frame(root)]
        while True:
            node, pending, kids = stack[-1]
            kid = next(pending, None)
            if kid is None:
                stack.pop()
                tree = mk_tree(node, kids)
                if not stack:
                    return tree
                if tree is not None:
                    stack[-1][2].append(tree)
            elif kid in terminals:
                kids.append(terminals[kid])
            else:
                stack.append(frame(kid))

    roots = []
    for node in constituent_list:
        if node not in parents:
            tree = build(node)
            if tree is not None:
                roots.append(tree)
    if pruned:
        warnings.warn('%s: dropped %d constituent(s) without words: %s' %
                      (key, len(pruned), ', '.join(pruned)),
                      PrunedNodeWarning)
    return Forest(key, roots, list(terminals.values()))
