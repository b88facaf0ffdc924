# License: BSD3

"""
Grafting resolved syntax forests onto the base corpus graph.

Each constituent becomes a new node in its own layer; each
parent-child relation becomes a dominance edge (ordered with an edge
annotation); words are not copied, the edges simply point at the
existing base tokens. The graph only ever grows.
"""

from collections import OrderedDict, namedtuple
import re
import warnings

from .errors import InvalidNameError, ConfigError, MergeError
from .graph import (ANNIS_NS, DEFAULT_NS, LAYER, TOK, DOMINANCE,
                    Component, PART_OF_ANNIS)
from .tokens import TOK_ANNO
from .tree import SyntaxTree, terminals_of


ORDER = 'order'
"""
Edge annotation (in the layer namespace) holding the position of the
child among its siblings
"""

_NAME_RE = re.compile(r'^[^\s:/#]+$')


class TaggingWarning(UserWarning):
    "A token already has a different back-reference"
    pass


def _check_name(what, name):
    if not name or not _NAME_RE.match(name):
        raise InvalidNameError(what, name)
    return name


class MergeSettings(object):
    """
    How grafted material is named

    :param layer: layer (and annotation namespace) of the new nodes
        and edges
    :param tree_anno: name of the category annotation
    :param tree_display: display name of the tree visualizer
    :param iri_anno: if set, name of an annotation holding the IRI each
        node comes from
    :param tag_terminals: also give the base tokens an `iri_anno`
        annotation (if `iri_anno` is set)
    """
    def __init__(self, layer='treebank', tree_anno='tree',
                 tree_display='tree', iri_anno=None, tag_terminals=True):
        self.layer = _check_name('layer', layer)
        self.tree_anno = _check_name('annotation', tree_anno)
        if not tree_display or not tree_display.strip():
            raise InvalidNameError('display', tree_display)
        self.tree_display = tree_display
        self.iri_anno = iri_anno and _check_name('annotation', iri_anno)
        self.tag_terminals = tag_terminals

    @property
    def dominance(self):
        "component of the new edges"
        return Component(DOMINANCE, self.layer, '')


class Graft(namedtuple('Graft', 'key nodes edges tagged')):
    """
    What a merge added: new node ids, new edge indices, and the ids of
    the base tokens that received a back-reference
    """
    def __str__(self):
        return '%s: %d nodes, %d edges' % (self.key, len(self.nodes),
                                           len(self.edges))


def node_name(doc_name, layer, tree):
    """
    Name of the graph node for a constituent
    """
    return '%s#%s_%s' % (doc_name, layer, tree.ref.local)


def _plan(graph, resolved, settings):
    """
    Names for the new nodes, checked for clashes before anything is
    written
    """
    trees = resolved.forest.nonterminals()
    if not trees:
        return []
    if resolved.doc_node is None:
        raise MergeError(resolved.key,
                         'document %s is not in the base corpus' %
                         (resolved.key,))
    doc_name = graph.node_name(resolved.doc_node)
    plan = []
    seen = set()
    for tree in trees:
        name = node_name(doc_name, settings.layer, tree)
        if name in seen or graph.has_node(name):
            raise MergeError(name)
        seen.add(name)
        plan.append((tree, name))
    return plan


def _datasources(graph, resolved, tree, cache):
    "datasources of the tokens under a constituent"
    result = set()
    for terminal in terminals_of(tree):
        tok = resolved.token(terminal).node
        if tok not in cache:
            cache[tok] = graph.datasources_of(tok)
        result.update(cache[tok])
    return sorted(result)


def _tag(graph, token_node, settings, iri):
    """
    Give a token a back-reference unless it has one; return True if we
    added it
    """
    existing = graph.node_anno(token_node, settings.layer, settings.iri_anno)
    if existing is None:
        graph.add_node_anno(token_node, settings.layer, settings.iri_anno, iri)
        return True
    if existing != iri:
        warnings.warn('token %s already refers to %s, not tagging it with %s'
                      % (graph.node_name(token_node), existing, iri),
                      TaggingWarning)
    return False


def merge(graph, resolved, settings):
    """
    Graft a resolved forest onto the graph (in place).

    Parameters
    ----------
    graph : AnnotationGraph
    resolved : ResolvedForest
    settings : MergeSettings

    Returns
    -------
    graft : Graft

    Raises
    ------
    MergeError
        if one of the new node names is taken; nothing is added in that
        case
    """
    plan = _plan(graph, resolved, settings)
    layer = settings.layer
    nodes = []
    ids = {}
    for tree, name in plan:
        node = graph.add_node(name, 'node')
        graph.add_node_anno(node, ANNIS_NS, LAYER, layer)
        graph.add_node_anno(node, layer, settings.tree_anno, tree.category)
        if settings.iri_anno:
            graph.add_node_anno(node, layer, settings.iri_anno, tree.iri)
        ids[id(tree)] = node
        nodes.append(node)

    edges = []
    tagged = []
    cache = {}
    for tree, _ in plan:
        parent = ids[id(tree)]
        for position, kid in enumerate(tree):
            if isinstance(kid, SyntaxTree):
                target = ids[id(kid)]
            else:
                target = resolved.token(kid).node
                if settings.iri_anno and settings.tag_terminals and\
                        _tag(graph, target, settings, kid.iri):
                    tagged.append(target)
            edge = graph.add_edge(parent, target, settings.dominance)
            graph.add_edge_anno(edge, layer, ORDER, str(position))
            edges.append(edge)
        for source in _datasources(graph, resolved, tree, cache):
            edges.append(graph.add_edge(parent, source, PART_OF_ANNIS))
    return Graft(resolved.key, nodes, edges, tagged)


# ---------------------------------------------------------------------
# corpus configuration
# ---------------------------------------------------------------------

def tree_visualizer(settings, segmentation=TOK_ANNO):
    """
    ANNIS visualizer entry showing the grafted trees, with the words
    taken from the given segmentation (or the base tokens if None)
    """
    if segmentation is None:
        terminal_ns, terminal_name = ANNIS_NS, TOK
    else:
        terminal_ns, terminal_name = DEFAULT_NS, segmentation
    mappings = OrderedDict([('edge_type', 'null'),
                            ('node_anno_ns', settings.layer),
                            ('node_key', settings.tree_anno),
                            ('terminal_ns', terminal_ns),
                            ('terminal_name', terminal_name)])
    return OrderedDict([('display_name', settings.tree_display),
                        ('element', 'node'),
                        ('layer', settings.layer),
                        ('vis_type', 'tree'),
                        ('visibility', 'hidden'),
                        ('mappings', mappings)])


def add_visualizer(config, settings, segmentation=TOK_ANNO):
    """
    Append the tree visualizer to a corpus configuration (a dict as
    read from its TOML), and return the configuration
    """
    visualizers = config.setdefault('visualizers', [])
    if not isinstance(visualizers, list):
        raise ConfigError('invalid corpus config: `visualizers` is not '
                          'an array')
    visualizers.append(tree_visualizer(settings, segmentation))
    return config
