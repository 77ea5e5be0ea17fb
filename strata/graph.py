# -*- coding: utf-8 -*-
#
# Author: Eric Kow
# License: BSD3

"""
Graph representation of the relations between annotations.
Classes of interest:

* RelationGraph: the core structure, use the
  `RelationGraph.from_document` factory method to build one out of a
  `strata.annotation` document (or `Document.relation_graph`)

* DotGraph: visual representation, built from `RelationGraph`

Vertices are the annotations themselves; each edge carries a
`RelationEdge` recording the relation type and value (eg. the
dependency label) it came from. As with the underlying python-graph
digraph, there is at most one edge from any vertex to another; if a
document has two relations between the same pair of annotations, the
first one wins.

Dependency relations point from the dependent to its head, so the
dependents of a word are found on its *incoming* edges. This is what
`RelationGraph.subtree_nodes` walks.
"""

import textwrap
import warnings
from collections import deque, namedtuple

import pydot
from pygraph.algorithms.minmax import shortest_path
from pygraph.classes.digraph import digraph
from pygraph.classes.graph import graph

from .annotation import Span
from .types import RelationType


DEFAULT_NON_DESCENDING = frozenset(['relcl', 'parataxis'])
"""
Edge values which `subtree_nodes` does not descend through by default
(relative clauses and parataxis hang off a word without really being
part of its phrase)
"""


class RelationEdge(namedtuple('RelationEdge',
                              'source target rtype value weight')):
    """
    An edge in a `RelationGraph`

    * source: annotation the relation comes from
    * target: annotation the relation points to
    * rtype: `RelationType`
    * value: relation value (eg. `nsubj`), may be None
    * weight: used for shortest path computations
    """
    def __new__(cls, source, target, rtype, value=None, weight=1.0):
        return super(RelationEdge, cls).__new__(cls, source, target, rtype,
                                                value, weight)

    @property
    def relation(self):
        "the relation value, or failing that the name of its type"
        return self.value if self.value is not None else self.rtype.name

    def __str__(self):
        return '%s -[%s]-> %s' % (self.source.id, self.relation,
                                  self.target.id)


class RelationGraph(digraph):
    """
    Directed graph over annotations, see module docstring.

    Prefer `add_relation_edge` and `remove_relation_edge` to the
    low-level python-graph methods, which do not know about relation
    edges.
    """
    def __init__(self):
        super(RelationGraph, self).__init__()
        self._relation_edges = {}
        self._undirected = None

    @classmethod
    def from_edges(cls, edges):
        """
        Graph made of the given relation edges (and their endpoints)
        """
        res = cls()
        for edge in edges:
            res.add_relation_edge(edge)
        return res

    @classmethod
    def from_document(cls, doc, rtypes=None):
        """
        Graph of the relations between the annotations of a document.

        :param rtypes: only keep relations of these types
        :type rtypes: iterable of RelationType (or names)
        """
        if rtypes is not None:
            rtypes = frozenset(x if isinstance(x, RelationType)
                               else RelationType.create(x)
                               for x in rtypes)
        res = cls()
        for anno in doc.annotations():
            for rel in anno.relations():
                if rtypes is not None and rel.type not in rtypes:
                    continue
                target = doc.annotation(rel.target)
                if target is None:
                    warnings.warn("%s: dangling %s relation from %s to %s"
                                  % (doc.id, rel.type, anno.id, rel.target))
                    continue
                edge = RelationEdge(anno, target, rel.type, rel.value)
                if not res.add_relation_edge(edge):
                    warnings.warn("%s: ignoring %s (already an edge between "
                                  "these annotations)" % (doc.id, edge))
        return res

    # -----------------------------------------------------------------
    # editing
    # -----------------------------------------------------------------

    def add_vertex(self, annotation):
        "add an annotation to the graph if not already there"
        if not self.has_node(annotation):
            self.add_node(annotation)

    def add_relation_edge(self, edge):
        """
        Add a relation edge (and its endpoints, if needed).

        Return False if there already is an edge between its
        endpoints, in which case the graph is unchanged
        """
        self.add_vertex(edge.source)
        self.add_vertex(edge.target)
        pair = (edge.source, edge.target)
        if self.has_edge(pair):
            return False
        self.add_edge(pair, wt=edge.weight, label=edge.relation)
        self._relation_edges[pair] = edge
        self._undirected = None
        return True

    def remove_relation_edge(self, source, target):
        """
        Remove the edge from source to target, returning it (or None
        if there was none)
        """
        pair = (source, target)
        if not self.has_edge(pair):
            return None
        self.del_edge(pair)
        self._undirected = None
        return self._relation_edges.pop(pair, None)

    def remove_edge_if(self, predicate):
        """
        Remove all relation edges satisfying the predicate
        """
        doomed = [e for e in self.relation_edges() if predicate(e)]
        for edge in doomed:
            self.remove_relation_edge(edge.source, edge.target)
        return doomed

    # -----------------------------------------------------------------
    # access
    # -----------------------------------------------------------------

    def relation_edge(self, source, target):
        "edge from source to target, or None"
        return self._relation_edges.get((source, target))

    def relation_edges(self):
        "all relation edges, sorted by source then target"
        return [self._relation_edges[k]
                for k in sorted(self._relation_edges)]

    def vertices(self):
        "all annotations in the graph, in document order"
        return sorted(self.nodes())

    def in_edges(self, vertex):
        "relation edges pointing to an annotation"
        return [self._relation_edges[(src, vertex)]
                for src in sorted(self.incidents(vertex))]

    def out_edges(self, vertex):
        "relation edges coming from an annotation"
        return [self._relation_edges[(vertex, tgt)]
                for tgt in sorted(self.neighbors(vertex))]

    def filter_by_edge(self, predicate):
        """
        New graph made only of the edges satisfying the predicate
        (and their endpoints)
        """
        return RelationGraph.from_edges(e for e in self.relation_edges()
                                        if predicate(e))

    def filter_by_vertex(self, predicate):
        """
        New graph made only of the annotations satisfying the
        predicate, and the edges between them
        """
        res = RelationGraph()
        for vertex in self.vertices():
            if predicate(vertex):
                res.add_vertex(vertex)
        for edge in self.relation_edges():
            if res.has_node(edge.source) and res.has_node(edge.target):
                res.add_relation_edge(edge)
        return res

    # -----------------------------------------------------------------
    # paths
    # -----------------------------------------------------------------

    def _undirected_view(self):
        """
        Undirected version of this graph (built on first use, and again
        after any edge is added or removed)
        """
        if self._undirected is None:
            view = graph()
            view.add_nodes(self.nodes())
            for (src, tgt), edge in self._relation_edges.items():
                if not view.has_edge((src, tgt)):
                    view.add_edge((src, tgt), wt=edge.weight)
            self._undirected = view
        return self._undirected

    def _path(self, search_graph, source, target):
        if source is target or not search_graph.has_node(source):
            return []
        previous, _ = shortest_path(search_graph, source)
        if target not in previous:
            return []
        res = []
        current = target
        while current is not source:
            before = previous[current]
            edge = self.relation_edge(before, current) or\
                self.relation_edge(current, before)
            res.append(edge)
            current = before
        res.reverse()
        return res

    def shortest_path(self, source, target):
        """
        Shortest directed path from source to target, as a list of
        relation edges (empty if there is none)
        """
        return self._path(self, source, target)

    def shortest_connection(self, source, target):
        """
        Shortest path from source to target, ignoring edge direction,
        as a list of relation edges (empty if there is none). The
        edges are returned as they are in the graph, so they do not
        necessarily point from source to target.
        """
        return self._path(self._undirected_view(), source, target)

    # -----------------------------------------------------------------
    # subtrees
    # -----------------------------------------------------------------

    def subtree_nodes(self, node, relations=None,
                      non_descending=DEFAULT_NON_DESCENDING):
        """
        Annotations in the subtree below a node, found by walking
        incoming edges breadth first (the node itself is not included).

        :param relations: if set, only start from incoming edges
            with these values
        :param non_descending: edge values whose source is included
            in the subtree but not expanded any further
        :rtype: set of annotations
        """
        non_descending = frozenset(non_descending or [])
        first = self.in_edges(node)
        if relations is not None:
            wanted = frozenset(relations)
            first = [e for e in first if e.relation in wanted]
        children = set()
        queue = deque(first)
        while queue:
            edge = queue.popleft()
            kid = edge.source
            if kid is node or kid in children:
                continue
            children.add(kid)
            if edge.relation in non_descending:
                continue
            queue.extend(e for e in self.in_edges(kid)
                         if e.source not in children)
        return children

    def subtree_span(self, node, include_given=False, **kwargs):
        """
        Span covering the subtree below a node (see `subtree_nodes`
        for the keyword arguments); None if there is nothing to cover
        """
        nodes = self.subtree_nodes(node, **kwargs)
        if include_given:
            nodes.add(node)
        if not nodes:
            return None
        return Span.merge_all(n.span for n in nodes)

    # -----------------------------------------------------------------
    # visualisation
    # -----------------------------------------------------------------

    def to_dot(self):
        "`DotGraph` for this graph"
        return DotGraph(self)

    def _repr_dot_(self):
        """Ipython magic: show Graphviz dot representation of the graph"""
        return self.to_dot().to_string()


class DotGraph(pydot.Dot):
    """
    A dot representation of a relation graph for visualisation.
    The `to_string()` method is most likely to be of interest here
    """
    def _unit_label(self, anno):
        '''string to display for an annotation'''
        return '%s [%s]' % (anno.text, anno.type)

    def _add_unit(self, anno):
        attrs = {'label': textwrap.fill(self._unit_label(anno), 30),
                 'shape': 'plaintext'}
        self.add_node(pydot.Node(str(anno.id), **attrs))

    def _add_edge(self, edge):
        attrs = {'label': ' ' + edge.relation,
                 'fontcolor': 'blue'}
        self.add_edge(pydot.Edge(str(edge.source.id), str(edge.target.id),
                                 **attrs))

    def __init__(self, rel_graph):
        super(DotGraph, self).__init__(graph_type='digraph')
        self.core = rel_graph
        for anno in self.core.vertices():
            self._add_unit(anno)
        for edge in self.core.relation_edges():
            self._add_edge(edge)
