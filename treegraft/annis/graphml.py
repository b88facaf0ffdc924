# -*- coding: utf-8 -*-
#
# License: BSD3

"""
GraphML as written by ANNIS.

Some conventions to be aware of:

* `key` elements declare annotations; their `attr.name` is the
  qualified annotation name `ns::name`
* the node id is the node name; `annis::node_name` is not repeated in
  the data
* edges have a `label` naming their component, `Type/layer/name`
* the corpus configuration is a TOML document stored as graph-level
  data, with key name `configuration`
"""

import xml.etree.ElementTree as ET

import toml

from ..graph import (AnnotationGraph, Component, GraphStructureError,
                     NODE_NAME_KEY, NODE_TYPE_KEY)
from ..storage import MEMORY


CONFIG_KEY = 'configuration'


def split_qname(qname):
    """
    `(ns, name)` for an annotation name `ns::name` (the namespace is
    empty if there is none)
    """
    if '::' in qname:
        return tuple(qname.split('::', 1))
    return ('', qname)


def join_qname(ns, name):
    "`ns::name` (or just `name` without a namespace)"
    return '%s::%s' % (ns, name) if ns else name


def _local(tag):
    "tag without its XML namespace"
    return tag.rsplit('}', 1)[-1]


def _data(elem, keys):
    "annotations of an element, as a dict from `(ns, name)` to value"
    annos = {}
    for data in elem:
        if _local(data.tag) != 'data':
            continue
        key = data.get('key')
        if key not in keys:
            raise GraphStructureError('undeclared GraphML key %r' % key)
        annos[keys[key]] = data.text or ''
    return annos


# ---------------------------------------------------------------------
# reading
# ---------------------------------------------------------------------

def read_graphml(stream, storage=MEMORY):
    """
    Read an ANNIS GraphML document.

    Parameters
    ----------
    stream : file-like object or path
    storage : string, optional
        storage mode of the resulting graph (see `treegraft.storage`)

    Returns
    -------
    graph : AnnotationGraph
    config : dict
        corpus configuration (empty if there is none)
    """
    graph = AnnotationGraph(storage=storage)
    keys = {}
    config = {}
    try:
        for _, elem in ET.iterparse(stream, events=('end',)):
            tag = _local(elem.tag)
            if tag == 'key':
                if elem.get('attr.name') == CONFIG_KEY:
                    keys[elem.get('id')] = CONFIG_KEY
                else:
                    keys[elem.get('id')] = split_qname(elem.get('attr.name'))
            elif tag == 'node':
                _read_node(graph, elem, keys)
                elem.clear()
            elif tag == 'edge':
                _read_edge(graph, elem, keys)
                elem.clear()
            elif tag == 'graph':
                annos = _data(elem, keys)
                if CONFIG_KEY in annos:
                    config = toml.loads(annos[CONFIG_KEY])
    except Exception:
        graph.close()
        raise
    return graph, config


def _read_node(graph, elem, keys):
    annos = _data(elem, keys)
    node_type = annos.pop(NODE_TYPE_KEY, 'node')
    annos.pop(NODE_NAME_KEY, None)
    node = graph.add_node(elem.get('id'), node_type)
    for (ns, name), value in sorted(annos.items()):
        graph.add_node_anno(node, ns, name, value)


def _read_edge(graph, elem, keys):
    source, target = elem.get('source'), elem.get('target')
    for name in (source, target):
        if not graph.has_node(name):
            raise GraphStructureError('edge %s refers to unknown node %s' %
                                      (elem.get('id'), name))
    label = elem.get('label')
    if label is None:
        raise GraphStructureError('edge %s has no component label' %
                                  elem.get('id'))
    idx = graph.add_edge(graph.node_id(source), graph.node_id(target),
                         Component.from_string(label))
    for (ns, name), value in sorted(_data(elem, keys).items()):
        graph.add_edge_anno(idx, ns, name, value)


# ---------------------------------------------------------------------
# writing
# ---------------------------------------------------------------------

def _key_elements(graph):
    """
    A `key` element for every annotation used in the graph (plus the
    configuration), and a dict from `(ns, name)` to key id
    """
    node_keys = set()
    for node in graph.node_ids():
        node_keys.update(graph.node_annos(node))
    node_keys.discard(NODE_NAME_KEY)
    edge_keys = set()
    for idx in range(len(graph.edges())):
        edge_keys.update(graph.edge_annos(idx))

    ids = {}
    elems = [ET.Element('key', {'id': 'k0', 'for': 'graph',
                                'attr.name': CONFIG_KEY,
                                'attr.type': 'string'})]
    for qname in sorted(node_keys | edge_keys):
        key_id = 'k%d' % (len(ids) + 1)
        ids[qname] = key_id
        target = 'all' if qname in node_keys and qname in edge_keys else\
            'node' if qname in node_keys else 'edge'
        elems.append(ET.Element('key', {'id': key_id, 'for': target,
                                        'attr.name': join_qname(*qname),
                                        'attr.type': 'string'}))
    return elems, ids


def _with_data(elem, annos, keys):
    "add a `data` child per annotation, in name order"
    for qname, value in sorted(annos.items()):
        data = ET.SubElement(elem, 'data', {'key': keys[qname]})
        data.text = value
    return elem


_GRAPH_OPEN = b'<graph edgedefault="directed" parse.order="nodesfirst" '\
    b'parse.nodeids="free" parse.edgeids="canonical">\n'


def write_graphml(graph, stream, config=None, rename=None):
    """
    Write a graph (and its corpus configuration) as ANNIS GraphML.

    Elements are serialised one node or edge at a time, so the output
    never exists as a whole XML tree in memory.

    :param stream: binary file-like object
    :param rename: optional function mapping each node name to the name
        it should have in the output (see `treegraft.rename`)
    """
    def put(elem):
        "one element and a newline"
        stream.write(ET.tostring(elem, encoding='utf-8'))
        stream.write(b'\n')

    rename = rename or (lambda x: x)
    key_elems, keys = _key_elements(graph)
    stream.write(b"<?xml version='1.0' encoding='utf-8'?>\n<graphml>\n")
    for elem in key_elems:
        put(elem)
    stream.write(_GRAPH_OPEN)
    if config:
        conf = ET.Element('data', {'key': 'k0'})
        conf.text = toml.dumps(config)
        put(conf)

    for node in graph.node_ids():
        annos = graph.node_annos(node)
        del annos[NODE_NAME_KEY]
        put(_with_data(ET.Element('node',
                                  {'id': rename(graph.node_name(node))}),
                       annos, keys))

    for idx, edge in enumerate(graph.edges()):
        xedge = ET.Element('edge',
                           {'id': 'e%d' % idx,
                            'source': rename(graph.node_name(edge.source)),
                            'target': rename(graph.node_name(edge.target)),
                            'label': str(edge.component)})
        put(_with_data(xedge, graph.edge_annos(idx), keys))

    stream.write(b'</graph>\n</graphml>\n')
