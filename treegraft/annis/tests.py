# -*- coding: utf-8 -*-
#
# License: BSD3
# pylint: disable=invalid-name

"""
Tests for treegraft.annis
"""

import io
import os
import shutil
import tempfile
import unittest

from treegraft.annis import (CorpusWriter, load_corpora, read_graphml,
                             write_graphml)
from treegraft.annis.graphml import join_qname, split_qname
from treegraft.graph import (AnnotationGraph, Component, DOMINANCE,
                             GraphStructureError, PART_OF_ANNIS)
from treegraft.rename import corpus_renamer
from treegraft.storage import DISK

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<graphml>
  <key id="k0" for="graph" attr.name="configuration" attr.type="string"/>
  <key id="k1" for="node" attr.name="annis::node_type" attr.type="string"/>
  <key id="k2" for="node" attr.name="annis::doc" attr.type="string"/>
  <key id="k3" for="node" attr.name="annis::tok" attr.type="string"/>
  <key id="k4" for="node" attr.name="pos" attr.type="string"/>
  <graph edgedefault="directed">
    <data key="k0">[context]
default = 5
</data>
    <node id="my%20corpus"><data key="k1">corpus</data></node>
    <node id="my%20corpus/doc1">
      <data key="k1">corpus</data><data key="k2">doc1</data>
    </node>
    <node id="my%20corpus/doc1#text"><data key="k1">datasource</data></node>
    <node id="my%20corpus/doc1#t1">
      <data key="k1">node</data><data key="k3">Hallo</data>
      <data key="k4">ITJ</data>
    </node>
    <edge source="my%20corpus/doc1" target="my%20corpus"
          label="PartOf/annis/"/>
    <edge source="my%20corpus/doc1#text" target="my%20corpus/doc1"
          label="PartOf/annis/"/>
    <edge source="my%20corpus/doc1#t1" target="my%20corpus/doc1#text"
          label="PartOf/annis/"/>
  </graph>
</graphml>
"""


def mk_graph():
    "a small graph with an annotated dominance edge"
    graph = AnnotationGraph()
    corpus = graph.add_node('C', 'corpus')
    doc = graph.add_node('C/D', 'corpus')
    graph.add_node_anno(doc, 'annis', 'doc', 'D')
    graph.add_edge(doc, corpus, PART_OF_ANNIS)
    tok = graph.add_node('C/D#t0')
    graph.add_node_anno(tok, 'annis', 'tok', u'Bär')
    graph.add_edge(tok, doc, PART_OF_ANNIS)
    tree = graph.add_node('C/D#treebank_s1')
    graph.add_node_anno(tree, 'treebank', 'tree', 'S')
    graph.add_node_anno(tree, 'annis', 'layer', 'treebank')
    edge = graph.add_edge(tree, tok, Component(DOMINANCE, 'treebank', ''))
    graph.add_edge_anno(edge, 'treebank', 'order', '0')
    return graph


def round_trip(graph, **kwargs):
    "write a graph and read it back"
    stream = io.BytesIO()
    write_graphml(graph, stream, **kwargs)
    stream.seek(0)
    return read_graphml(stream)


class _CountingStream(io.BytesIO):
    "byte stream that counts calls to write"
    writes = 0

    def write(self, data):
        self.writes += 1
        return io.BytesIO.write(self, data)


class QNameTest(unittest.TestCase):
    "annotation names"

    def test_qnames(self):
        self.assertEqual(('annis', 'tok'), split_qname('annis::tok'))
        self.assertEqual(('', 'pos'), split_qname('pos'))
        self.assertEqual(('a', 'b::c'), split_qname('a::b::c'))
        self.assertEqual('annis::tok', join_qname('annis', 'tok'))
        self.assertEqual('pos', join_qname('', 'pos'))


class GraphMLTest(unittest.TestCase):
    "tests for treegraft.annis.graphml"

    def test_read(self):
        graph, config = read_graphml(io.BytesIO(SAMPLE))
        self.assertEqual({'context': {'default': 5}}, config)
        self.assertEqual('my%20corpus', graph.corpus_name())
        tok = graph.node_id('my%20corpus/doc1#t1')
        self.assertEqual('Hallo', graph.node_anno(tok, 'annis', 'tok'))
        self.assertEqual('ITJ', graph.node_anno(tok, '', 'pos'))
        self.assertEqual('node', graph.node_type(tok))
        self.assertEqual(['my%20corpus/doc1#text'],
                         [graph.node_name(x)
                          for x in graph.datasources_of(tok)])

    def test_round_trip(self):
        graph = mk_graph()
        config = {'context': {'default': 5},
                  'visualizers': [{'vis_type': 'tree',
                                   'mappings': {'node_key': 'tree'}}]}
        graph2, config2 = round_trip(graph, config=config)
        self.assertEqual(config, config2)
        self.assertEqual(len(graph), len(graph2))
        for node in graph.node_ids():
            name = graph.node_name(node)
            self.assertEqual(graph.node_annos(node),
                             graph2.node_annos(graph2.node_id(name)))
        self.assertEqual(len(graph.edges()), len(graph2.edges()))
        comp = Component(DOMINANCE, 'treebank', '')
        idxs = graph2.outgoing(graph2.node_id('C/D#treebank_s1'), comp)
        self.assertEqual(1, len(idxs))
        self.assertEqual({('treebank', 'order'): '0'},
                         graph2.edge_annos(idxs[0]))

    def test_no_config(self):
        _, config = round_trip(mk_graph())
        self.assertEqual({}, config)

    def test_rename(self):
        graph2, _ = round_trip(mk_graph(),
                               rename=corpus_renamer('C', 'C_treebank'))
        self.assertEqual('C_treebank', graph2.corpus_name())
        self.assertTrue(graph2.has_node('C_treebank/D#treebank_s1'))
        self.assertFalse(graph2.has_node('C/D'))

    def test_incremental_write(self):
        "each node and edge is written on its own"
        graph = mk_graph()
        tok = graph.node_id('C/D#t0')
        graph.add_node_anno(tok, 'annotation', 'norm', u'<a & "b">')
        stream = _CountingStream()
        write_graphml(graph, stream)
        self.assertTrue(stream.writes >= len(graph) + len(graph.edges()))
        self.assertTrue(stream.getvalue().startswith(b'<?xml'))
        stream.seek(0)
        graph2, _ = read_graphml(stream)
        self.assertEqual(u'<a & "b">',
                         graph2.node_anno(graph2.node_id('C/D#t0'),
                                          'annotation', 'norm'))

    def test_disk_storage(self):
        graph, _ = read_graphml(io.BytesIO(SAMPLE), storage=DISK)
        tok = graph.node_id('my%20corpus/doc1#t1')
        self.assertEqual('ITJ', graph.node_anno(tok, '', 'pos'))
        graph.close()

    def test_bad_graphs(self):
        undeclared = SAMPLE.replace(b'<data key="k4">', b'<data key="k9">')
        unknown = SAMPLE.replace(b'target="my%20corpus"\n',
                                 b'target="nowhere"\n')
        unlabelled = SAMPLE.replace(b' label="PartOf/annis/"/>\n    <edge',
                                    b'/>\n    <edge', 1)
        for text in [undeclared, unknown, unlabelled]:
            self.assertRaises(GraphStructureError,
                              read_graphml, io.BytesIO(text))


class ArchiveTest(unittest.TestCase):
    "tests for treegraft.annis.archive"

    def setUp(self):
        self.tdir = tempfile.mkdtemp()
        self.path = os.path.join(self.tdir, 'corpora.zip')

    def tearDown(self):
        shutil.rmtree(self.tdir)

    def test_round_trip(self):
        writer = CorpusWriter(self.path)
        writer.write_corpus('C', mk_graph(), {'context': {'default': 5}},
                            linked_files={'style.css': b'body {}',
                                          'img/logo.png': b'\x89PNG'})
        graph, config = read_graphml(io.BytesIO(SAMPLE))
        writer.write_corpus('my corpus', graph, config)
        self.assertFalse(os.path.exists(self.path))
        writer.finish()
        self.assertEqual(['corpora.zip'], os.listdir(self.tdir))

        corpora = list(load_corpora(self.path))
        self.assertEqual(['C', 'my corpus'], [c.name for c in corpora])
        first = corpora[0]
        self.assertEqual({'context': {'default': 5}}, first.config)
        self.assertEqual({'style.css': b'body {}',
                          'img/logo.png': b'\x89PNG'}, first.linked_files)
        self.assertTrue(first.graph.has_node('C/D#treebank_s1'))
        self.assertEqual({}, corpora[1].linked_files)
        for corpus in corpora:
            corpus.close()

    def test_abort(self):
        "an aborted archive leaves nothing behind"
        with open(self.path, 'wb') as stream:
            stream.write(b'old')
        writer = CorpusWriter(self.path)
        writer.write_corpus('C', mk_graph(), {})
        writer.abort()
        self.assertEqual(['corpora.zip'], os.listdir(self.tdir))
        with open(self.path, 'rb') as stream:
            self.assertEqual(b'old', stream.read())


if __name__ == '__main__':
    unittest.main()
