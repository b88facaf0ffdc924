# -*- coding: utf-8 -*-
#
# License: BSD3
# pylint: disable=too-many-public-methods, invalid-name

"""
Tests for treegraft
"""

import argparse
import codecs
import os
import shutil
import tempfile
import unittest
import warnings
import zipfile

import treegraft.cmd.merge
from treegraft.align import (AliasingWarning, REM_SANITY_KEYS, resolve,
                             sanitize_anno)
from treegraft.annis.archive import CorpusWriter, load_corpora
from treegraft.corpus import AmbiguousSourceError, DocKey, Reader
from treegraft.draw import DotTree
from treegraft.errors import (AnnotationMismatchError, CycleError,
                              DanglingReferenceError, DuplicateLocalIdError,
                              InvalidNameError, InvalidPatternError,
                              MergeError, MultipleParentsError, ParseError,
                              TokenOrdinalOutOfRangeError,
                              UnorderedTerminalError,
                              UnresolvedTerminalError)
from treegraft.graph import (AnnotationGraph, Component, COVERAGE,
                             DEFAULT_ORDERING, DOMINANCE, PART_OF_ANNIS,
                             GraphStructureError)
from treegraft.merge import (MergeSettings, TaggingWarning, add_visualizer,
                             merge)
from treegraft.pipeline import SKIP, Settings, run
from treegraft.rename import check_pattern, corpus_renamer, rename
from treegraft.storage import DISK, MEMORY, mk_store
from treegraft.tokens import TOK_ANNO, TokenIndex
from treegraft.tree import (PrunedNodeWarning, assemble, local_name,
                            unit_base)
from treegraft.turtle import (BNode, Iri, Literal, NIF, RDF_TYPE, XSD,
                              TripleStream, group_by_subject)
from treegraft.util import add_subcommand, command_help, command_name


# ---------------------------------------------------------------------
# fixtures
# ---------------------------------------------------------------------

PREFIXES = u"""\
@prefix nif: <http://persistence.uni-leipzig.org/nlp2rdf/ontologies/nif-core#> .
@prefix conll: <http://ufal.mff.cuni.cz/conll2009-st/task-description.html#> .
@prefix powla: <http://purl.org/powla/powla.owl#> .
@prefix : <http://example.org/C/D/> .
"""

WORDS = u"""
:s1 a nif:Sentence .
:w0 a nif:Word ; conll:WORD "Der" ; conll:HEAD :s1 ; nif:nextWord :w1 .
:w1 a nif:Word ; conll:WORD "Mann" ; conll:HEAD :s1 ; nif:nextWord :w2 .
:w2 a nif:Word ; conll:WORD "lacht" ; conll:HEAD :s1 .
"""

# S dominating NP (word 0) and VP (words 1 and 2)
SCENARIO = PREFIXES + WORDS + u"""
:S conll:CAT "S" ; powla:hasParent :s1 .
:NP conll:CAT "NP" ; powla:hasParent :S .
:VP conll:CAT "VP" ; powla:hasParent :S .
:w0 powla:hasParent :NP .
:w1 powla:hasParent :VP .
:w2 powla:hasParent :VP .
"""

# two constituents whose IRIs share their last segment
SAME_LAST_SEGMENT = u"""
<http://example.org/C/D/s1/NP> conll:CAT "NP" ; powla:hasChild :w0 .
<http://example.org/C/D/s2/NP> conll:CAT "NP" ; powla:hasChild :w1 , :w2 .
"""

DEEP = 1500


def deep_chain(depth):
    "unary constituents X0 ... X<depth-1> stacked over the first word"
    lines = [u':X0 conll:CAT "X" ; powla:hasChild :w0 .']
    for i in range(1, depth):
        lines.append(u':X%d conll:CAT "X" ; powla:hasChild :X%d .' %
                     (i, i - 1))
    return PREFIXES + WORDS + u'\n'.join(lines) + u'\n'


KEY = DocKey('C', 'D')


def mk_forest(text, key=KEY):
    "assemble a forest from Turtle text"
    return assemble(group_by_subject(TripleStream.from_string(text)), key)


def add_document(graph, corpus_id, corpus, doc, words, segmentation=True):
    """
    Add a document with one text to a graph. Each word is a token
    (`annis::tok`); unless `segmentation` is False it is also covered
    by a `default_ns::tok_anno` node carrying an `annotation::norm`
    """
    doc_name = '%s/%s' % (corpus, doc)
    doc_id = graph.add_node(doc_name, 'corpus')
    graph.add_node_anno(doc_id, 'annis', 'doc', doc)
    graph.add_edge(doc_id, corpus_id, PART_OF_ANNIS)
    text = graph.add_node(doc_name + '#text', 'datasource')
    graph.add_edge(text, doc_id, PART_OF_ANNIS)
    coverage = Component(COVERAGE, 'default_ns', '')
    previous = None
    for i, word in enumerate(words):
        tok = graph.add_node('%s#t%d' % (doc_name, i))
        graph.add_node_anno(tok, 'annis', 'tok', word)
        graph.add_edge(tok, text, PART_OF_ANNIS)
        if previous is not None:
            graph.add_edge(previous, tok, DEFAULT_ORDERING)
        previous = tok
        if segmentation:
            seg = graph.add_node('%s#seg%d' % (doc_name, i))
            graph.add_node_anno(seg, 'default_ns', TOK_ANNO, word)
            graph.add_node_anno(seg, 'annotation', 'norm', word)
            graph.add_edge(seg, text, PART_OF_ANNIS)
            graph.add_edge(seg, tok, coverage)
    return doc_id


def mk_graph(docs=(('D', ['Der', 'Mann', 'lacht']),), corpus='C',
             segmentation=True, storage=MEMORY):
    "a base corpus graph with the given documents"
    graph = AnnotationGraph(storage=storage)
    corpus_id = graph.add_node(corpus, 'corpus')
    for doc, words in docs:
        add_document(graph, corpus_id, corpus, doc, words,
                     segmentation=segmentation)
    return graph


def snapshot(graph):
    "everything in a graph, by name"
    nodes = dict((graph.node_name(x), graph.node_annos(x))
                 for x in graph.node_ids())
    edges = [(graph.node_name(e.source), graph.node_name(e.target),
              str(e.component), graph.edge_annos(i))
             for i, e in enumerate(graph.edges())]
    return nodes, edges


def dominance_edges(graph, layer='treebank'):
    "indices of the dominance edges of a layer"
    comp = Component(DOMINANCE, layer, '')
    return [i for i, e in enumerate(graph.edges()) if e.component == comp]


def children(graph, node_id, layer='treebank'):
    "names of the children of a node in edge order"
    comp = Component(DOMINANCE, layer, '')
    idxs = graph.outgoing(node_id, comp)
    order = dict((i, int(graph.edge_annos(i)[(layer, 'order')]))
                 for i in idxs)
    return [graph.node_name(graph.edge(i).target)
            for i in sorted(idxs, key=order.get)]


def merge_text(graph, text, settings=None, segmentation=TOK_ANNO,
               sanity_keys=()):
    "assemble, resolve and merge Turtle text into the graph"
    forest = mk_forest(text)
    index = TokenIndex.build(graph, segmentation=segmentation)
    resolved = resolve(forest, index, sanity_keys=sanity_keys)
    return merge(graph, resolved, settings or MergeSettings())


# ---------------------------------------------------------------------
# storage and graph
# ---------------------------------------------------------------------

class StorageTest(unittest.TestCase):
    "tests for treegraft.storage"

    def test_memory_and_disk(self):
        "both stores behave the same"
        for mode in [MEMORY, DISK]:
            store = mk_store(mode)
            store.put(3, ('ns', 'a'), 'x')
            store.put(3, ('ns', 'b'), 'y')
            self.assertTrue(3 in store)
            self.assertFalse(4 in store)
            self.assertEqual(1, len(store))
            self.assertEqual({('ns', 'a'): 'x', ('ns', 'b'): 'y'},
                             store.get(3))
            self.assertEqual('y', store.value(3, ('ns', 'b')))
            self.assertEqual(None, store.value(4, ('ns', 'b')))
            store.close()

    def test_disk_cleanup(self):
        "the disk store removes its directory"
        store = mk_store(DISK)
        tdir = store._dir
        self.assertTrue(os.path.isdir(tdir))
        store.close()
        self.assertFalse(os.path.exists(tdir))

    def test_unknown_mode(self):
        self.assertRaises(ValueError, mk_store, 'cloud')


class GraphTest(unittest.TestCase):
    "tests for treegraft.graph"

    def test_duplicate_name(self):
        graph = mk_graph()
        self.assertRaises(MergeError, graph.add_node, 'C/D#t0')

    def test_component_label(self):
        comp = Component.from_string('Dominance/treebank/')
        self.assertEqual(Component('Dominance', 'treebank', ''), comp)
        self.assertEqual('Dominance/treebank/', str(comp))
        self.assertRaises(GraphStructureError, Component.from_string, 'x')

    def test_edges_deduplicated(self):
        graph = mk_graph()
        before = len(graph.edges())
        doc = graph.node_id('C/D')
        idx = graph.add_edge(doc, graph.node_id('C'), PART_OF_ANNIS)
        self.assertEqual(before, len(graph.edges()))
        self.assertEqual(doc, graph.edge(idx).source)

    def test_conventions(self):
        "corpus, documents and datasources"
        graph = mk_graph(docs=[('D', ['a']), ('E', ['b', 'c'])])
        self.assertEqual('C', graph.corpus_name())
        self.assertEqual(['C/D', 'C/E'],
                         [graph.node_name(x) for x in graph.documents()])
        tok = graph.node_id('C/E#t1')
        self.assertEqual('C/E', graph.node_name(graph.document_of(tok)))
        self.assertEqual(['C/E#text'],
                         [graph.node_name(x)
                          for x in graph.datasources_of(tok)])

    def test_disk_graph(self):
        "annotations round trip through disk storage"
        with mk_graph(storage=DISK) as graph:
            tok = graph.node_id('C/D#t1')
            self.assertEqual('Mann', graph.node_anno(tok, 'annis', 'tok'))
            self.assertEqual('node', graph.node_type(tok))


# ---------------------------------------------------------------------
# token index
# ---------------------------------------------------------------------

class TokenIndexTest(unittest.TestCase):
    "tests for treegraft.tokens"

    def test_base_tokens(self):
        graph = mk_graph(segmentation=False)
        index = TokenIndex.build(graph)
        self.assertEqual(3, index.token_count('C', 'D'))
        tok = index.lookup('C', 'D', 1)
        self.assertEqual('Mann', tok.text)
        self.assertEqual('C/D#t1', graph.node_name(tok.node))
        self.assertEqual(['Der', 'Mann', 'lacht'],
                         [t.text for t in index.tokens('C', 'D')])

    def test_segmentation(self):
        graph = mk_graph()
        index = TokenIndex.build(graph, segmentation=TOK_ANNO)
        tok = index.lookup('C', 'D', 2)
        self.assertEqual('lacht', tok.text)
        self.assertEqual('C/D#seg2', graph.node_name(tok.node))
        self.assertEqual('lacht', tok.annotations[('annotation', 'norm')])

    def test_lookup_misses(self):
        index = TokenIndex.build(mk_graph())
        self.assertEqual(None, index.lookup('C', 'nope', 0))
        self.assertRaises(TokenOrdinalOutOfRangeError,
                          index.lookup, 'C', 'D', 3)
        self.assertRaises(TokenOrdinalOutOfRangeError,
                          index.lookup, 'C', 'D', -1)

    def test_empty_document(self):
        "a document without tokens is known, just empty"
        index = TokenIndex.build(mk_graph(docs=[('D', [])]))
        self.assertEqual([('C', 'D')], index.documents())
        self.assertRaises(TokenOrdinalOutOfRangeError,
                          index.lookup, 'C', 'D', 0)

    def test_branching_order(self):
        graph = mk_graph()
        graph.add_edge(graph.node_id('C/D#t0'), graph.node_id('C/D#t2'),
                       DEFAULT_ORDERING)
        self.assertRaises(GraphStructureError, TokenIndex.build, graph)


# ---------------------------------------------------------------------
# turtle
# ---------------------------------------------------------------------

class TurtleTest(unittest.TestCase):
    "tests for treegraft.turtle"

    def triples(self, text):
        "all triples in some text"
        return list(TripleStream.from_string(text, 'test.ttl'))

    def test_basic(self):
        triples = self.triples(u"""
            @prefix ex: <http://example.org/> . # comment
            ex:a a ex:Thing ;
                 ex:name "A", 'alpha'@en ;
                 ex:count 3 ;
                 ex:ok true .
            """)
        self.assertEqual(5, len(triples))
        subj = Iri('http://example.org/a')
        self.assertTrue(all(t.subject == subj for t in triples))
        self.assertEqual(Iri(RDF_TYPE), triples[0].predicate)
        self.assertEqual(Literal('A', None, None), triples[1].object)
        self.assertEqual(Literal('alpha', 'en', None), triples[2].object)
        self.assertEqual(Literal('3', None, Iri(XSD + 'integer')),
                         triples[3].object)
        self.assertEqual(Iri(XSD + 'boolean'), triples[4].object.datatype)

    def test_strings(self):
        triples = self.triples(u'''
            PREFIX ex: <http://example.org/>
            ex:a ex:b """two
lines""" , "tab\\there" , "typed"^^ex:T , "\\u00e9t\\u00e9" .
            ''')
        values = [t.object for t in triples]
        self.assertEqual('two\nlines', values[0].value)
        self.assertEqual('tab\there', values[1].value)
        self.assertEqual(Iri('http://example.org/T'), values[2].datatype)
        self.assertEqual(u'été', values[3].value)

    def test_base_and_bnodes(self):
        triples = self.triples(u"""
            @base <http://example.org/doc/> .
            <a> <rel> _:b1 .
            _:b1 <rel> <../up> .
            """)
        self.assertEqual(Iri('http://example.org/doc/a'), triples[0].subject)
        self.assertEqual(BNode('b1'), triples[0].object)
        self.assertEqual(Iri('http://example.org/up'), triples[1].object)

    def test_sparql_directives_any_case(self):
        triples = self.triples(u"""
            prefix ex: <http://example.org/>
            Base <http://example.org/doc/>
            ex:a <rel> ex:b .
            """)
        self.assertEqual(Iri('http://example.org/a'), triples[0].subject)
        self.assertEqual(Iri('http://example.org/doc/rel'),
                         triples[0].predicate)

    def test_restartable(self):
        stream = TripleStream.from_string(SCENARIO)
        self.assertEqual(list(stream), list(stream))

    def test_lazy(self):
        "triples before an error are still produced"
        stream = iter(TripleStream.from_string(
            u'<a> <b> <c> .\n<a> <b> .\n'))
        self.assertEqual(Iri('c'), next(stream).object)
        self.assertRaises(ParseError, next, stream)

    def test_missing_dot(self):
        try:
            self.triples(u'@prefix : <http://x/> .\n:a :b :c')
            self.fail('expected ParseError')
        except ParseError as err:
            self.assertEqual('test.ttl', err.unit)
            self.assertEqual(2, err.line)

    def test_errors(self):
        bad = [u':a :b :c .',                  # undeclared prefix
               u'<a> <b> [ <c> <d> ] .',       # property list
               u'<a> <b> "bad \\q escape" .',
               u'<a> <b> <c> ; ; .x',
               u'<a> <b> ~ .']
        for text in bad:
            self.assertRaises(ParseError, self.triples, text)

    def test_group_by_subject(self):
        grouped = group_by_subject(TripleStream.from_string(SCENARIO))
        subjects = list(grouped)
        prefix = 'http://example.org/C/D/'
        self.assertEqual(prefix + 's1', subjects[0])
        self.assertEqual(prefix + 'w0', subjects[1])
        # w0 gets its parent from a later statement
        self.assertEqual(5, len(grouped[prefix + 'w0']))
        self.assertEqual((Iri(RDF_TYPE), Iri(NIF + 'Word')),
                         grouped[prefix + 'w0'][0])


# ---------------------------------------------------------------------
# tree assembly
# ---------------------------------------------------------------------

class AssembleTest(unittest.TestCase):
    "tests for treegraft.tree"

    def test_scenario(self):
        forest = mk_forest(SCENARIO)
        self.assertEqual(1, len(forest.roots))
        root = forest.roots[0]
        self.assertEqual('S', root.category)
        self.assertEqual(['NP', 'VP'], [x.category for x in root])
        self.assertEqual([0, 1, 2], [t.ordinal for t in root.leaves()])
        self.assertEqual(['S', 'NP', 'VP'],
                         [x.category for x in forest.nonterminals()])
        self.assertEqual('Der', forest.terminals[0].features['WORD'])
        self.assertEqual(('C', 'D', 'NP'),
                         (root[0].ref.corpus, root[0].ref.doc,
                          root[0].ref.local))
        self.assertEqual(None, root.ref.ordinal)

    def test_local_name(self):
        self.assertEqual('w1', local_name('http://example.org/C/D/w1'))
        self.assertEqual('w1', local_name('http://example.org/C/D#w1'))
        self.assertEqual('w1', local_name('w1'))

    def test_unit_base(self):
        self.assertEqual('http://x/C/D/',
                         unit_base(['http://x/C/D/w1', 'http://x/C/D/w10']))
        self.assertEqual('http://x/C/D#',
                         unit_base(['http://x/C/D#a', 'http://x/C/D#b']))
        self.assertEqual('', unit_base([]))
        self.assertEqual('s1%2FNP',
                         local_name('http://x/C/D/s1/NP', 'http://x/C/D/'))
        self.assertEqual('a%25b', local_name('a%b'))

    def test_local_ids_below_unit_base(self):
        "constituents that only differ before their last segment"
        forest = mk_forest(PREFIXES + WORDS + SAME_LAST_SEGMENT)
        self.assertEqual(['s1%2FNP', 's2%2FNP'],
                         [x.ref.local for x in forest.roots])
        self.assertEqual(['w0', 'w1', 'w2'],
                         [t.ref.local for t in forest.terminals])

    def test_duplicate_local_id(self):
        try:
            mk_forest(PREFIXES + WORDS + u"""
                :NP conll:CAT "NP" ; powla:hasChild :w0 .
                _:NP conll:CAT "NP" ; powla:hasChild :w1 .
                """)
            self.fail('expected DuplicateLocalIdError')
        except DuplicateLocalIdError as err:
            self.assertEqual(KEY, err.key)
            self.assertEqual('NP', err.local)
            self.assertEqual(['http://example.org/C/D/NP', 'NP'],
                             [str(x) for x in err.iris])

    def test_has_child(self):
        "dominance can also be given from the parent"
        forest = mk_forest(PREFIXES + WORDS + u"""
            :NP conll:CAT "NP" ; powla:hasChild :w0, :w1 .
            """)
        self.assertEqual([0, 1], [t.ordinal for t in forest.roots[0]])

    def test_explicit_sibling_order(self):
        forest = mk_forest(SCENARIO + u":VP powla:next :NP .\n")
        self.assertEqual(['VP', 'NP'],
                         [x.category for x in forest.roots[0]])

    def test_source_order_without_chains(self):
        forest = mk_forest(PREFIXES + u"""
            :w2 a nif:Word ; conll:WORD "c" .
            :w0 a nif:Word ; conll:WORD "a" .
            :X conll:CAT "X" ; powla:hasChild :w0 , :w2 .
            """)
        self.assertEqual(['c', 'a'], [str(t) for t in forest.terminals])
        self.assertEqual(['a', 'c'], [str(t) for t in forest.roots[0]])

    def test_sentence_order(self):
        "sentences are ordered by their chain, not by source order"
        forest = mk_forest(PREFIXES + u"""
            :s2 a nif:Sentence .
            :s1 a nif:Sentence ; nif:nextSentence :s2 .
            :v0 a nif:Word ; conll:HEAD :s2 .
            :w0 a nif:Word ; conll:HEAD :s1 ; nif:nextWord :w1 .
            :w1 a nif:Word ; conll:HEAD :s1 ; nif:nextWord :v0 .
            """)
        self.assertEqual(['w0', 'w1', 'v0'],
                         [t.ref.local for t in forest.terminals])

    def test_many_sentences(self):
        "sentences listed backwards, each with a word chain"
        lines = []
        for i in reversed(range(50)):
            nxt = u' ; nif:nextSentence :s%d' % (i + 1) if i < 49 else u''
            lines.append(u':s%d a nif:Sentence%s .' % (i, nxt))
            lines.append(u':b%d a nif:Word ; conll:HEAD :s%d .' % (i, i))
            lines.append(u':a%d a nif:Word ; conll:HEAD :s%d ; '
                         u'nif:nextWord :b%d .' % (i, i, i))
        forest = mk_forest(PREFIXES + u'\n'.join(lines) + u'\n')
        expected = []
        for i in range(50):
            expected.extend(['a%d' % i, 'b%d' % i])
        self.assertEqual(expected, [t.ref.local for t in forest.terminals])
        self.assertEqual(list(range(100)),
                         [t.ordinal for t in forest.terminals])

    def test_deep_tree(self):
        forest = mk_forest(deep_chain(DEEP))
        self.assertEqual(1, len(forest.roots))
        self.assertEqual('X%d' % (DEEP - 1), forest.roots[0].ref.local)
        self.assertEqual(DEEP, len(forest.nonterminals()))
        self.assertTrue(len(DotTree(forest).get_nodes()) >= DEEP)

    def test_forests(self):
        "no trees, or several trees, are fine"
        forest = mk_forest(PREFIXES + WORDS)
        self.assertEqual([], forest.roots)
        self.assertEqual(3, len(forest.terminals))
        forest = mk_forest(PREFIXES + WORDS + u"""
            :A conll:CAT "A" ; powla:hasChild :w0 .
            :B conll:CAT "B" ; powla:hasChild :w1 , :w2 .
            """)
        self.assertEqual(['A', 'B'], [x.category for x in forest.roots])

    def test_dangling(self):
        try:
            mk_forest(SCENARIO + u':VP powla:hasChild :nowhere .\n')
            self.fail('expected DanglingReferenceError')
        except DanglingReferenceError as err:
            self.assertEqual(KEY, err.key)
            self.assertEqual('http://example.org/C/D/nowhere', err.target)
        self.assertRaises(DanglingReferenceError, mk_forest,
                          SCENARIO + u':VP powla:hasParent "S" .\n')

    def test_multiple_parents(self):
        self.assertRaises(MultipleParentsError, mk_forest,
                          SCENARIO + u':w0 powla:hasParent :VP .\n')

    def test_same_edge_twice(self):
        "stating an edge from both ends is not a second parent"
        forest = mk_forest(SCENARIO + u':NP powla:hasChild :w0 .\n')
        self.assertEqual(1, len(forest.roots[0][0]))

    def test_cycle(self):
        self.assertRaises(CycleError, mk_forest, PREFIXES + WORDS + u"""
            :A conll:CAT "A" ; powla:hasParent :B ; powla:hasChild :w0 .
            :B conll:CAT "B" ; powla:hasParent :A .
            """)

    def test_unordered_word(self):
        self.assertRaises(UnorderedTerminalError, mk_forest,
                          PREFIXES + WORDS + u':w3 a nif:Word .\n')

    def test_pruning(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            forest = mk_forest(SCENARIO + u"""
                :E conll:CAT "E" ; powla:hasParent :S .
                """)
        self.assertEqual(['NP', 'VP'],
                         [x.category for x in forest.roots[0]])
        self.assertTrue(any(issubclass(w.category, PrunedNodeWarning)
                            for w in caught))

    def test_dot(self):
        dot = DotTree(mk_forest(SCENARIO)).to_string()
        self.assertTrue('NP' in dot)
        self.assertTrue('lacht' in dot)


# ---------------------------------------------------------------------
# alignment
# ---------------------------------------------------------------------

class _SameTokenIndex(object):
    "an index where every position is the same token"
    def __init__(self, token):
        self.token = token

    def lookup(self, corpus, doc, ordinal):
        return self.token

    def document_node(self, corpus, doc):
        return None


class ResolveTest(unittest.TestCase):
    "tests for treegraft.align"

    def test_total(self):
        graph = mk_graph()
        index = TokenIndex.build(graph, segmentation=TOK_ANNO)
        resolved = resolve(mk_forest(SCENARIO), index,
                           sanity_keys=REM_SANITY_KEYS)
        names = [graph.node_name(resolved.token(t).node)
                 for t in resolved.forest.terminals]
        self.assertEqual(['C/D#seg0', 'C/D#seg1', 'C/D#seg2'], names)
        self.assertEqual([], resolved.aliased)
        self.assertEqual('C/D', graph.node_name(resolved.doc_node))

    def test_out_of_range(self):
        "a sixth word in a three token document"
        text = PREFIXES + u"".join(
            u':w%d a nif:Word ; nif:nextWord :w%d .\n' % (i, i + 1)
            for i in range(5)) + u':w5 a nif:Word .\n'
        index = TokenIndex.build(mk_graph(), segmentation=TOK_ANNO)
        try:
            resolve(mk_forest(text), index)
            self.fail('expected UnresolvedTerminalError')
        except UnresolvedTerminalError as err:
            self.assertEqual('http://example.org/C/D/w3', err.iri)
            self.assertEqual(3, err.ordinal)

    def test_unknown_document(self):
        index = TokenIndex.build(mk_graph(), segmentation=TOK_ANNO)
        forest = mk_forest(SCENARIO, key=DocKey('C', 'other'))
        self.assertRaises(UnresolvedTerminalError, resolve, forest, index)

    def test_sanity_check(self):
        graph = mk_graph(docs=[('D', ['Der', 'Frau', 'lacht'])])
        index = TokenIndex.build(graph, segmentation=TOK_ANNO)
        forest = mk_forest(SCENARIO)
        resolve(forest, index)
        try:
            resolve(forest, index, sanity_keys=REM_SANITY_KEYS)
            self.fail('expected AnnotationMismatchError')
        except AnnotationMismatchError as err:
            self.assertEqual(('Mann', 'Frau'), (err.expected, err.actual))

    def test_sanitize(self):
        self.assertEqual(None, sanitize_anno('--'))
        self.assertEqual(None, sanitize_anno(None))
        self.assertEqual('a-b', sanitize_anno(' a#b '))

    def test_aliasing(self):
        "two words on one token is a warning, not an error"
        index = TokenIndex.build(mk_graph(), segmentation=TOK_ANNO)
        token = index.lookup('C', 'D', 0)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            resolved = resolve(mk_forest(SCENARIO), _SameTokenIndex(token))
        self.assertEqual(1, len(resolved.aliased))
        self.assertEqual(3, len(resolved.aliased[0].terminals))
        self.assertTrue(any(issubclass(w.category, AliasingWarning)
                            for w in caught))


# ---------------------------------------------------------------------
# merge
# ---------------------------------------------------------------------

class MergeTest(unittest.TestCase):
    "tests for treegraft.merge"

    def test_scenario(self):
        graph = mk_graph()
        before_nodes, _ = snapshot(graph)
        graft = merge_text(graph, SCENARIO)
        self.assertEqual(3, len(graft.nodes))
        self.assertEqual(5, len(dominance_edges(graph)))
        cats = sorted(graph.node_anno(x, 'treebank', 'tree')
                      for x in graft.nodes)
        self.assertEqual(['NP', 'S', 'VP'], cats)
        for node in graft.nodes:
            self.assertEqual('treebank', graph.node_anno(node, 'annis',
                                                         'layer'))
            self.assertEqual('node', graph.node_type(node))
        for i in range(3):
            name = 'C/D#seg%d' % i
            self.assertEqual(before_nodes[name],
                             graph.node_annos(graph.node_id(name)))

    def test_names(self):
        graph = mk_graph()
        merge_text(graph, SCENARIO)
        self.assertTrue(graph.has_node('C/D#treebank_S'))
        self.assertEqual(['C/D#treebank_NP', 'C/D#treebank_VP'],
                         children(graph, graph.node_id('C/D#treebank_S')))

    def test_names_below_unit_base(self):
        "IRIs with the same last segment become different nodes"
        graph = mk_graph()
        graft = merge_text(graph, PREFIXES + WORDS + SAME_LAST_SEGMENT)
        self.assertEqual(2, len(graft.nodes))
        self.assertEqual(['C/D#seg0'],
                         children(graph,
                                  graph.node_id('C/D#treebank_s1%2FNP')))
        self.assertEqual(['C/D#seg1', 'C/D#seg2'],
                         children(graph,
                                  graph.node_id('C/D#treebank_s2%2FNP')))

    def test_deep_tree(self):
        graph = mk_graph()
        graft = merge_text(graph, deep_chain(DEEP))
        self.assertEqual(DEEP, len(graft.nodes))
        self.assertEqual(DEEP, len(dominance_edges(graph)))
        self.assertEqual(['C/D#treebank_X0'],
                         children(graph, graph.node_id('C/D#treebank_X1')))

    def test_order(self):
        "edge order reconstructs the children in source order"
        graph = mk_graph()
        merge_text(graph, SCENARIO + u':VP powla:next :NP .\n')
        self.assertEqual(['C/D#treebank_VP', 'C/D#treebank_NP'],
                         children(graph, graph.node_id('C/D#treebank_S')))
        self.assertEqual(['C/D#seg1', 'C/D#seg2'],
                         children(graph, graph.node_id('C/D#treebank_VP')))

    def test_additive(self):
        graph = mk_graph()
        nodes, edges = snapshot(graph)
        merge_text(graph, SCENARIO,
                   settings=MergeSettings(iri_anno='iri'))
        after_nodes, after_edges = snapshot(graph)
        for name, annos in nodes.items():
            after = after_nodes[name]
            for key, value in annos.items():
                self.assertEqual(value, after[key])
        self.assertEqual(edges, after_edges[:len(edges)])

    def test_disjoint(self):
        graph = mk_graph()
        old_ids = set(graph.node_ids())
        old_names = set(graph.node_name(x) for x in old_ids)
        graft = merge_text(graph, SCENARIO)
        self.assertFalse(old_ids & set(graft.nodes))
        self.assertFalse(old_names &
                         set(graph.node_name(x) for x in graft.nodes))

    def test_part_of_datasource(self):
        graph = mk_graph()
        graft = merge_text(graph, SCENARIO)
        text = graph.node_id('C/D#text')
        for node in graft.nodes:
            self.assertEqual([text], graph.successors(node, PART_OF_ANNIS))

    def test_iri_anno(self):
        graph = mk_graph()
        merge_text(graph, SCENARIO, settings=MergeSettings(iri_anno='iri'))
        snode = graph.node_id('C/D#treebank_S')
        self.assertEqual('http://example.org/C/D/S',
                         graph.node_anno(snode, 'treebank', 'iri'))
        seg = graph.node_id('C/D#seg0')
        self.assertEqual('http://example.org/C/D/w0',
                         graph.node_anno(seg, 'treebank', 'iri'))

    def test_iri_anno_untagged_terminals(self):
        graph = mk_graph()
        settings = MergeSettings(iri_anno='iri', tag_terminals=False)
        graft = merge_text(graph, SCENARIO, settings=settings)
        self.assertEqual([], graft.tagged)
        seg = graph.node_id('C/D#seg0')
        self.assertEqual(None, graph.node_anno(seg, 'treebank', 'iri'))

    def test_never_overwrite_tags(self):
        graph = mk_graph()
        seg = graph.node_id('C/D#seg0')
        graph.add_node_anno(seg, 'treebank', 'iri', 'elsewhere')
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            graft = merge_text(graph, SCENARIO,
                               settings=MergeSettings(iri_anno='iri'))
        self.assertEqual('elsewhere',
                         graph.node_anno(seg, 'treebank', 'iri'))
        self.assertFalse(seg in graft.tagged)
        self.assertTrue(any(issubclass(w.category, TaggingWarning)
                            for w in caught))

    def test_no_partial_graft(self):
        "a name clash is found before anything is added"
        graph = mk_graph()
        graph.add_node('C/D#treebank_VP')
        nodes, edges = snapshot(graph)
        self.assertRaises(MergeError, merge_text, graph, SCENARIO)
        self.assertEqual((nodes, edges), snapshot(graph))

    def test_base_tokens(self):
        "without segmentation, edges point to the base tokens"
        graph = mk_graph(segmentation=False)
        merge_text(graph, SCENARIO, segmentation=None)
        self.assertEqual(['C/D#t0'],
                         children(graph, graph.node_id('C/D#treebank_NP')))

    def test_settings(self):
        for bad in ['', 'a b', 'a/b', 'a::b']:
            self.assertRaises(InvalidNameError, MergeSettings, layer=bad)
        self.assertRaises(InvalidNameError, MergeSettings, tree_anno='x y')
        self.assertRaises(InvalidNameError, MergeSettings, tree_display=' ')

    def test_visualizer(self):
        config = add_visualizer({}, MergeSettings(layer='syn'))
        vis = config['visualizers'][0]
        self.assertEqual('tree', vis['vis_type'])
        self.assertEqual('syn', vis['layer'])
        self.assertEqual('syn', vis['mappings']['node_anno_ns'])
        self.assertEqual(TOK_ANNO, vis['mappings']['terminal_name'])


# ---------------------------------------------------------------------
# rename
# ---------------------------------------------------------------------

class RenameTest(unittest.TestCase):
    "tests for treegraft.rename"

    def test_rename(self):
        self.assertEqual('11-12_1-obd-PV-X_treebank',
                         rename('11-12_1-obd-PV-X', '%c_treebank'))
        self.assertRaises(InvalidPatternError, rename, 'x', 'treebank')

    def test_check_pattern(self):
        self.assertEqual('%c_x', check_pattern('%c_x'))
        self.assertRaises(ValueError, check_pattern, 'x')

    def test_corpus_renamer(self):
        mapper = corpus_renamer('my corpus', 'new')
        self.assertEqual('new', mapper('my corpus'))
        self.assertEqual('new', mapper('my%20corpus'))
        self.assertEqual('new/D#t1', mapper('my%20corpus/D#t1'))
        self.assertRaises(ValueError, mapper, 'other/D')


# ---------------------------------------------------------------------
# corpus
# ---------------------------------------------------------------------

class ReaderTest(unittest.TestCase):
    "tests for treegraft.corpus"

    def setUp(self):
        self.tdir = tempfile.mkdtemp()
        os.makedirs(os.path.join(self.tdir, 'C'))

    def tearDown(self):
        shutil.rmtree(self.tdir)

    def touch(self, *parts):
        "create an empty file"
        with open(os.path.join(self.tdir, *parts), 'w'):
            pass

    def test_find(self):
        self.touch('C', 'D_1.ttl')
        self.touch('D.ttl')
        self.touch('E.ttl')
        self.touch('DE.ttl')
        self.touch('F.txt')
        reader = Reader(self.tdir)
        self.assertEqual(os.path.join(self.tdir, 'C', 'D_1.ttl'),
                         reader.find(DocKey('C', 'D')))
        self.assertEqual(os.path.join(self.tdir, 'E.ttl'),
                         reader.find(DocKey('C', 'E')))
        self.assertEqual(None, reader.find(DocKey('C', 'F')))
        units = reader.units([DocKey('C', x) for x in 'DEF'])
        self.assertEqual([DocKey('C', 'D'), DocKey('C', 'E')],
                         sorted(units))

    def test_ambiguous(self):
        self.touch('C', 'D_1.ttl')
        self.touch('C', 'D_2.ttl')
        self.assertRaises(AmbiguousSourceError,
                          Reader(self.tdir).find, DocKey('C', 'D'))


# ---------------------------------------------------------------------
# command line
# ---------------------------------------------------------------------

class CmdTest(unittest.TestCase):
    "tests for treegraft.cmd"

    def parse(self, *args):
        "merge subcommand arguments"
        parser = argparse.ArgumentParser()
        treegraft.cmd.merge.config_argparser(parser)
        return parser.parse_args(list(args))

    def test_defaults(self):
        args = self.parse('in.zip', 'ttl')
        self.assertEqual('in.out.zip',
                         treegraft.cmd.merge.default_output(args.input))
        settings = treegraft.cmd.merge._settings(args)
        self.assertEqual(DISK, settings.storage)
        self.assertEqual(TOK_ANNO, settings.segmentation)
        self.assertEqual(REM_SANITY_KEYS, settings.sanity_keys)
        self.assertEqual('treebank', settings.merge.layer)

    def test_flags(self):
        args = self.parse('in.zip', 'ttl', '--in-memory', '--skip-errors',
                          '--segmentation', '', '--no-sanity-check',
                          '--layer', 'syn', '--rename', '%c_syn')
        settings = treegraft.cmd.merge._settings(args)
        self.assertEqual(MEMORY, settings.storage)
        self.assertEqual(SKIP, settings.on_error)
        self.assertEqual(None, settings.segmentation)
        self.assertEqual((), settings.sanity_keys)
        self.assertEqual('syn', settings.merge.layer)
        self.assertEqual('%c_syn', settings.rename)

    def test_subcommand(self):
        module = treegraft.cmd.merge
        self.assertEqual('merge', command_name(module))
        summary, epilog = command_help(module)
        self.assertTrue(summary.startswith('Merge a treebank'))
        self.assertTrue(epilog.startswith('Every document'))
        subparsers = argparse.ArgumentParser().add_subparsers()
        parser = add_subcommand(subparsers, module)
        self.assertEqual(summary, parser.description)
        self.assertEqual(epilog, parser.epilog)


# ---------------------------------------------------------------------
# whole pipeline
# ---------------------------------------------------------------------

class PipelineTest(unittest.TestCase):
    "tests for treegraft.pipeline"

    def setUp(self):
        self.tdir = tempfile.mkdtemp()
        self.input = os.path.join(self.tdir, 'in.zip')
        self.output = os.path.join(self.tdir, 'out.zip')
        self.ttl_dir = os.path.join(self.tdir, 'ttl')
        os.makedirs(self.ttl_dir)
        graph = mk_graph(docs=[('D', ['Der', 'Mann', 'lacht']),
                               ('E', ['ja']),
                               ('F', ['nein'])])
        writer = CorpusWriter(self.input)
        writer.write_corpus('C', graph, {'context': {'default': 5}},
                            linked_files={'style.css': b'x'})
        writer.finish()
        self.write_ttl('D_tree.ttl', SCENARIO)
        self.write_ttl('E.ttl', PREFIXES.replace('/D/', '/E/') + u"""
            :w0 a nif:Word ; conll:WORD "ja" .
            :w1 a nif:Word ; conll:WORD "ja" .
            :X conll:CAT "X" ; powla:hasChild :w0 , :w1 .
            """)

    def tearDown(self):
        shutil.rmtree(self.tdir)

    def write_ttl(self, name, text):
        "write a treebank unit"
        with codecs.open(os.path.join(self.ttl_dir, name), 'w',
                         'utf-8') as stream:
            stream.write(text)

    def load_output(self):
        "the single corpus of the output archive"
        corpora = list(load_corpora(self.output))
        self.assertEqual(1, len(corpora))
        return corpora[0]

    def test_abort(self):
        "E has more words than tokens"
        settings = Settings(storage=MEMORY)
        self.assertRaises(UnresolvedTerminalError, run, self.input,
                          self.ttl_dir, self.output, settings)
        self.assertFalse(os.path.exists(self.output))
        self.assertEqual(['in.zip', 'ttl'], sorted(os.listdir(self.tdir)))

    def test_skip(self):
        settings = Settings(storage=MEMORY, on_error=SKIP, rename='%c_tb')
        summary = run(self.input, self.ttl_dir, self.output, settings)
        self.assertEqual([DocKey('C', 'D')], [k for k, _ in summary.merged])
        self.assertEqual([DocKey('C', 'E')], [k for k, _ in summary.skipped])
        self.assertEqual([DocKey('C', 'F')], summary.missing)
        self.assertTrue('UnresolvedTerminalError' in str(summary))

        corpus = self.load_output()
        graph = corpus.graph
        self.assertEqual('C_tb', corpus.name)
        self.assertTrue(graph.has_node('C_tb/D#treebank_S'))
        self.assertFalse(graph.has_node('C_tb/E#treebank_X'))
        self.assertEqual(['C_tb/D#treebank_NP', 'C_tb/D#treebank_VP'],
                         children(graph, graph.node_id('C_tb/D#treebank_S')))
        self.assertEqual(5, corpus.config['context']['default'])
        self.assertEqual('tree', corpus.config['visualizers'][0]['vis_type'])
        self.assertEqual({'style.css': b'x'}, corpus.linked_files)
        with zipfile.ZipFile(self.output) as archive:
            self.assertTrue('C_tb/style.css' in archive.namelist())

    def test_parse_error_skipped(self):
        self.write_ttl('E.ttl', u'<a> <b> .\n')
        settings = Settings(storage=MEMORY, on_error=SKIP)
        summary = run(self.input, self.ttl_dir, self.output, settings)
        self.assertTrue(isinstance(summary.skipped[0][1], ParseError))
        self.assertTrue(self.load_output().graph.has_node('C/D#treebank_S'))

    def test_disk_storage(self):
        os.remove(os.path.join(self.ttl_dir, 'E.ttl'))
        summary = run(self.input, self.ttl_dir, self.output,
                      Settings(storage=DISK))
        self.assertEqual(1, len(summary.merged))
        self.assertTrue(self.load_output().graph.has_node('C/D#treebank_VP'))


if __name__ == '__main__':
    unittest.main()
