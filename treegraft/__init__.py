"""
The treegraft library merges a syntax treebank, given as one Turtle
file per document, into an existing ANNIS corpus. The trees become a
new layer of the corpus graph: constituents are added as nodes, words
are identified with existing tokens, and nothing already in the corpus
is changed.

Layers
~~~~~~
From the bottom up:

* graph (treegraft.graph, treegraft.storage): the ANNIS annotation
  graph as an arena of nodes and edges, with node annotations kept in
  memory or on disk

* tokens (treegraft.tokens): which node is token `n` of a document

* treebank (treegraft.turtle, treegraft.tree, treegraft.corpus):
  reading Turtle units, assembling them into syntax forests, and
  finding the unit for each document

* merge engine (treegraft.align, treegraft.merge, treegraft.rename):
  resolving words against tokens and grafting the forests

* adapters (treegraft.annis, treegraft.pipeline, treegraft.cmd):
  GraphML zip archives in and out, the per-corpus driver, and the
  command line ::

        cmd -> pipeline -> annis                      [adapters]
                  |
                  v
        align -> merge -> rename                      [merge engine]
          |        |
          v        v
        tree <- turtle, corpus      tokens <- graph   [base]
"""
