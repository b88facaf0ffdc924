# License: BSD3

"""
Graphviz rendering of assembled syntax forests, for eyeballing what a
treebank unit contains before merging it
"""

import codecs
import os

import pydot

from .tree import SyntaxTree, preorder


class DotTree(pydot.Dot):
    """
    A dot representation of a `Forest`. The `to_string()` method is
    most likely to be of interest here.

    Words are drawn in a row at the bottom, in document order; words
    that no tree dominates are greyed out.
    """
    def __init__(self, forest):
        pydot.Dot.__init__(self, graph_type='digraph')
        self.forest = forest
        self.set('ordering', 'out')
        self._count = 0
        covered = set()
        for root in forest.roots:
            self._add_tree(root, covered)
        self._add_words(covered)

    def _fresh_id(self):
        self._count += 1
        return 'n%d' % self._count

    def _word_id(self, terminal):
        return 'w%d' % terminal.ordinal

    def _add_tree(self, root, covered):
        node_ids = {id(root): self._fresh_id()}
        for tree in preorder(root):
            node_id = node_ids[id(tree)]
            self.add_node(pydot.Node(node_id, label=tree.category,
                                     shape='plaintext'))
            for kid in tree:
                if isinstance(kid, SyntaxTree):
                    kid_id = node_ids[id(kid)] = self._fresh_id()
                else:
                    kid_id = self._word_id(kid)
                    covered.add(kid.ordinal)
                self.add_edge(pydot.Edge(node_id, kid_id))

    def _add_words(self, covered):
        row = pydot.Subgraph('words', rank='same')
        previous = None
        for terminal in self.forest.terminals:
            attrs = {'label': str(terminal), 'shape': 'box'}
            if terminal.ordinal not in covered:
                attrs['fontcolor'] = 'grey'
                attrs['color'] = 'grey'
            row.add_node(pydot.Node(self._word_id(terminal), **attrs))
            if previous is not None:
                row.add_edge(pydot.Edge(previous, self._word_id(terminal),
                                        style='invis'))
            previous = self._word_id(terminal)
        self.add_subgraph(row)


def write_dot_tree(output_dir, forest):
    """
    Save the dot representation of a forest as `<doc>.dot` in the
    output directory, and return its path
    """
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)
    dot_file = os.path.join(output_dir, forest.key.doc + '.dot')
    with codecs.open(dot_file, 'w', encoding='utf-8') as fout:
        print(DotTree(forest).to_string(), file=fout)
    return dot_file
