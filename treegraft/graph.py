# -*- coding: utf-8 -*-
#
# License: BSD3

"""
Annotation graph in the ANNIS data model.

The graph is an arena: nodes are integer ids handed out by a counter,
edges are appended to a list, and annotations are kept in a store
(see `treegraft.storage`) keyed by node id. Loading a base corpus fills
the arena; grafting a tree appends to it. Nothing is ever removed, which
is how we guarantee that a merge is purely additive.

Conventions borrowed from ANNIS
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

* every node has a unique name (`annis::node_name`) and a type
  (`annis::node_type`), eg. `corpus`, `datasource`, `node`
* documents are corpus nodes with an `annis::doc` annotation and are
  named `<corpus>/<doc>` (URL-encoded segments)
* tokens carry `annis::tok` and are chained by the default ordering
  component `Ordering/annis/`
* edges belong to a component, ie. a (type, layer, name) triple such as
  `Dominance/treebank/` or `PartOf/annis/`
"""

from collections import defaultdict, namedtuple
from urllib.parse import unquote

from .errors import MergeError
from .storage import MEMORY, mk_store


ANNIS_NS = 'annis'
DEFAULT_NS = 'default_ns'

NODE_NAME = 'node_name'
NODE_TYPE = 'node_type'
TOK = 'tok'
DOC = 'doc'
LAYER = 'layer'

NODE_NAME_KEY = (ANNIS_NS, NODE_NAME)
NODE_TYPE_KEY = (ANNIS_NS, NODE_TYPE)
TOK_KEY = (ANNIS_NS, TOK)
DOC_KEY = (ANNIS_NS, DOC)
LAYER_KEY = (ANNIS_NS, LAYER)

# component types
COVERAGE = 'Coverage'
DOMINANCE = 'Dominance'
ORDERING = 'Ordering'
PART_OF = 'PartOf'
POINTING = 'Pointing'


class GraphStructureError(Exception):
    '''The base graph does not have the shape we expect'''
    def __init__(self, msg):
        Exception.__init__(self, msg)


class Component(namedtuple('Component', 'ctype layer name')):
    """
    Edge component, written `Type/layer/name` in ANNIS
    """
    def __str__(self):
        return '%s/%s/%s' % (self.ctype, self.layer, self.name)

    @classmethod
    def from_string(cls, label):
        """
        Read a `Type/layer/name` label (layer and name may be empty)
        """
        parts = label.split('/', 2)
        if len(parts) != 3 or not parts[0]:
            raise GraphStructureError('bad component label: %r' % label)
        return cls(*parts)


DEFAULT_ORDERING = Component(ORDERING, ANNIS_NS, '')
PART_OF_ANNIS = Component(PART_OF, ANNIS_NS, '')

Edge = namedtuple('Edge', 'source target component')


def split_doc_path(node_name):
    """
    Corpus and document path of a document node name `corpus/.../doc`,
    URL-decoded
    """
    parts = [unquote(x) for x in node_name.split('/')]
    if len(parts) < 2:
        raise GraphStructureError('not a document node name: %r' % node_name)
    return parts[0], parts[-1]


class AnnotationGraph(object):
    """
    Arena of nodes, edges and annotations.

    :param storage: where to keep node annotations,
        `treegraft.storage.MEMORY` or `treegraft.storage.DISK`
    """
    def __init__(self, storage=MEMORY):
        self.storage = storage
        self._names = []
        self._ids = {}
        self._annos = mk_store(storage)
        self._edges = []
        self._edge_index = {}
        self._components = set()
        self._edge_annos = {}
        self._outgoing = defaultdict(list)
        self._incoming = defaultdict(list)
        self._next_id = 0

    def close(self):
        "release the annotation store (important for disk storage)"
        self._annos.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------------------------------------------------------------
    # writing
    # ------------------------------------------------------------------

    def add_node(self, name, node_type='node'):
        """
        Add a node with a fresh id and return that id.

        Raises `MergeError` if a node with this name exists, or if the id
        counter has somehow fallen behind the existing identities
        """
        if name in self._ids:
            raise MergeError(name)
        node_id = self._next_id
        if node_id < len(self._names) or node_id in self._annos:
            raise MergeError(name, 'fresh id %d for %s is already in use' %
                             (node_id, name))
        self._next_id += 1
        self._names.append(name)
        self._ids[name] = node_id
        self._annos.put(node_id, NODE_TYPE_KEY, node_type)
        return node_id

    def add_node_anno(self, node_id, ns, name, value):
        "annotate a node"
        self._annos.put(node_id, (ns, name), value)

    def add_edge(self, source, target, component):
        """
        Add an edge (unless the exact same edge is already present) and
        return its index
        """
        edge = Edge(source, target, component)
        if edge in self._edge_index:
            return self._edge_index[edge]
        idx = len(self._edges)
        self._edges.append(edge)
        self._edge_index[edge] = idx
        self._components.add(component)
        self._outgoing[(component, source)].append(idx)
        self._incoming[(component, target)].append(idx)
        return idx

    def add_edge_anno(self, edge_idx, ns, name, value):
        "annotate an edge"
        self._edge_annos.setdefault(edge_idx, {})[(ns, name)] = value

    # ------------------------------------------------------------------
    # reading
    # ------------------------------------------------------------------

    def __len__(self):
        return len(self._names)

    def node_ids(self):
        "all node ids, in order of creation"
        return range(len(self._names))

    def has_node(self, name):
        "True if there is a node with this name"
        return name in self._ids

    def node_id(self, name):
        "id of the node with this name (KeyError if none)"
        return self._ids[name]

    def node_name(self, node_id):
        "name of a node"
        return self._names[node_id]

    def node_type(self, node_id):
        "`annis::node_type` of a node"
        return self.node_anno(node_id, ANNIS_NS, NODE_TYPE)

    def node_annos(self, node_id):
        """
        All annotations of a node as a dict from `(ns, name)` to value.
        The node name is included as `annis::node_name`
        """
        annos = self._annos.get(node_id)
        annos[NODE_NAME_KEY] = self._names[node_id]
        return annos

    def node_anno(self, node_id, ns, name):
        "value of one annotation of a node, or None"
        if (ns, name) == NODE_NAME_KEY:
            return self._names[node_id]
        return self._annos.value(node_id, (ns, name))

    def edges(self):
        "all edges, in order of creation"
        return list(self._edges)

    def edge(self, edge_idx):
        "the edge at this index"
        return self._edges[edge_idx]

    def edge_annos(self, edge_idx):
        "annotations of an edge as a dict from `(ns, name)` to value"
        return dict(self._edge_annos.get(edge_idx, {}))

    def components(self):
        "all components that have at least one edge"
        return sorted(self._components)

    def outgoing(self, node_id, component):
        "indices of edges leaving a node in a component"
        return list(self._outgoing.get((component, node_id), []))

    def incoming(self, node_id, component):
        "indices of edges entering a node in a component"
        return list(self._incoming.get((component, node_id), []))

    def successors(self, node_id, component):
        "targets of edges leaving a node in a component"
        return [self._edges[i].target for i in self.outgoing(node_id,
                                                              component)]

    def predecessors(self, node_id, component):
        "sources of edges entering a node in a component"
        return [self._edges[i].source for i in self.incoming(node_id,
                                                              component)]

    def incoming_any(self, node_id, ctype):
        """
        Sources of edges entering a node, over all components of the
        given type
        """
        return [self._edges[i].source
                for comp in self.components() if comp.ctype == ctype
                for i in self.incoming(node_id, comp)]

    # ------------------------------------------------------------------
    # ANNIS conventions
    # ------------------------------------------------------------------

    def corpus_name(self):
        """
        Name of the top-level corpus, ie. the corpus node which is not
        part of anything else
        """
        for node_id in self.node_ids():
            if self.node_type(node_id) == 'corpus' and\
                    not self.outgoing(node_id, PART_OF_ANNIS) and\
                    self.node_anno(node_id, ANNIS_NS, DOC) is None:
                return self.node_name(node_id)
        raise GraphStructureError('graph has no top-level corpus node')

    def documents(self):
        """
        Ids of document nodes, in order of creation
        """
        return [x for x in self.node_ids()
                if self.node_type(x) == 'corpus' and
                self.node_anno(x, ANNIS_NS, DOC) is not None]

    def document_of(self, node_id):
        """
        Id of the document a node is (transitively) part of, or None
        """
        for anc in self.part_of_closure(node_id):
            if self.node_type(anc) == 'corpus' and\
                    self.node_anno(anc, ANNIS_NS, DOC) is not None:
                return anc
        return None

    def part_of_closure(self, node_id):
        """
        Everything the node is (transitively) part of, nearest first
        """
        seen = set([node_id])
        result = []
        frontier = [node_id]
        while frontier:
            nxt = []
            for node in frontier:
                for parent in self.successors(node, PART_OF_ANNIS):
                    if parent not in seen:
                        seen.add(parent)
                        result.append(parent)
                        nxt.append(parent)
            frontier = nxt
        return result

    def datasources_of(self, node_id):
        "datasource nodes the node is (transitively) part of"
        return [x for x in self.part_of_closure(node_id)
                if self.node_type(x) == 'datasource']

    def is_token(self, node_id):
        "True if the node carries `annis::tok`"
        return self.node_anno(node_id, ANNIS_NS, TOK) is not None

    def token_chains(self, token_ids):
        """
        Split a set of tokens into chains along the default ordering
        component. Each chain starts with a token that has no ordering
        predecessor within the set. Chains are returned in the order of
        their first token's id.
        """
        members = set(token_ids)
        starts = sorted(x for x in members
                        if not [p for p in self.predecessors(x,
                                                             DEFAULT_ORDERING)
                                if p in members])
        chains = []
        seen = set()
        for start in starts:
            chain = []
            node = start
            while node is not None and node not in seen:
                seen.add(node)
                chain.append(node)
                nxt = [x for x in self.successors(node, DEFAULT_ORDERING)
                       if x in members]
                if len(nxt) > 1:
                    raise GraphStructureError(
                        'token %s has more than one successor' %
                        self.node_name(node))
                node = nxt[0] if nxt else None
            chains.append(chain)
        if len(seen) != len(members):
            raise GraphStructureError('token ordering contains a cycle')
        return chains
