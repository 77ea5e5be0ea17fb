# Author: Eric Kow
# License: BSD3

"""
Interval index over the annotations of a single document.

`AnnotationTree` is a balanced (AVL) binary search tree keyed on
`(start, end, id)`, each node additionally recording the largest end
offset found in its subtree. This lets us answer the span queries
documents need in `O(log n + k)` for `k` results:

* overlapping: annotations sharing at least one character with a
  reference span (or, for empty spans, straddling it)
* contained in: annotations entirely within a reference span
* enclosing: annotations entirely covering a reference span
* starting at: annotations with a given start offset

All queries return annotations in document order (start offset,
then end offset, then id).

The tree only relies on annotations having `span` and `id`
attributes.

The tree is not meant to be mutated concurrently, but read-only
queries do not modify it, so several threads may query a finished
document at the same time.
"""

# pylint: disable=too-few-public-methods


def _key(annotation):
    span = annotation.span
    return (span.char_start, span.char_end, annotation.id)


class _Node:
    """
    A node in the tree
    """
    __slots__ = ['key', 'annotation', 'left', 'right', 'height', 'max_end']

    def __init__(self, annotation):
        self.key = _key(annotation)
        self.annotation = annotation
        self.left = None
        self.right = None
        self.height = 1
        self.max_end = self.key[1]

    @property
    def start(self):
        "start offset of the node's span"
        return self.key[0]

    @property
    def end(self):
        "end offset of the node's span"
        return self.key[1]


def _height(node):
    return node.height if node is not None else 0


def _max_end(node):
    return node.max_end if node is not None else -1


def _update(node):
    node.height = 1 + max(_height(node.left), _height(node.right))
    node.max_end = max(node.end, _max_end(node.left), _max_end(node.right))


def _rotate_right(node):
    pivot = node.left
    node.left = pivot.right
    pivot.right = node
    _update(node)
    _update(pivot)
    return pivot


def _rotate_left(node):
    pivot = node.right
    node.right = pivot.left
    pivot.left = node
    _update(node)
    _update(pivot)
    return pivot


def _rebalance(node):
    _update(node)
    balance = _height(node.left) - _height(node.right)
    if balance > 1:
        if _height(node.left.left) < _height(node.left.right):
            node.left = _rotate_left(node.left)
        return _rotate_right(node)
    elif balance < -1:
        if _height(node.right.right) < _height(node.right.left):
            node.right = _rotate_right(node.right)
        return _rotate_left(node)
    return node


class AnnotationTree:
    """
    Augmented interval tree of annotations; see module docstring
    """
    def __init__(self, annotations=None):
        self._root = None
        self._size = 0
        for anno in annotations or []:
            self.add(anno)

    def __len__(self):
        return self._size

    def __iter__(self):
        return iter(self._walk(self._root))

    def __contains__(self, annotation):
        return self._find(_key(annotation)) is not None

    def clear(self):
        "remove everything from the tree"
        self._root = None
        self._size = 0

    # -----------------------------------------------------------------
    # editing
    # -----------------------------------------------------------------

    def add(self, annotation):
        """
        Insert an annotation; adding one which is already present
        (same span and id) replaces it
        """
        self._root = self._insert(self._root, _Node(annotation))

    def _insert(self, node, fresh):
        if node is None:
            self._size += 1
            return fresh
        if fresh.key < node.key:
            node.left = self._insert(node.left, fresh)
        elif fresh.key > node.key:
            node.right = self._insert(node.right, fresh)
        else:
            node.annotation = fresh.annotation
            return node
        return _rebalance(node)

    def remove(self, annotation):
        """
        Remove an annotation from the tree.

        Return True if it was there to be removed
        """
        before = self._size
        self._root = self._delete(self._root, _key(annotation))
        return self._size < before

    def _delete(self, node, key):
        if node is None:
            return None
        if key < node.key:
            node.left = self._delete(node.left, key)
        elif key > node.key:
            node.right = self._delete(node.right, key)
        else:
            self._size -= 1
            if node.left is None:
                return node.right
            elif node.right is None:
                return node.left
            # replace with in-order successor
            successor = node.right
            while successor.left is not None:
                successor = successor.left
            node.right = self._delete_min(node.right)
            successor.left = node.left
            successor.right = node.right
            return _rebalance(successor)
        return _rebalance(node)

    def _delete_min(self, node):
        if node.left is None:
            return node.right
        node.left = self._delete_min(node.left)
        return _rebalance(node)

    # -----------------------------------------------------------------
    # queries
    # -----------------------------------------------------------------

    def _find(self, key):
        node = self._root
        while node is not None:
            if key < node.key:
                node = node.left
            elif key > node.key:
                node = node.right
            else:
                return node
        return None

    def _walk(self, node):
        "in-order traversal"
        stack = []
        res = []
        while stack or node is not None:
            if node is not None:
                stack.append(node)
                node = node.left
            else:
                node = stack.pop()
                res.append(node.annotation)
                node = node.right
        return res

    def at_span(self, start, end):
        """
        Annotations with exactly this span
        """
        res = []

        def visit(node):
            "collect matches in order"
            if node is None:
                return
            if (node.start, node.end) >= (start, end):
                visit(node.left)
            if node.start == start and node.end == end:
                res.append(node.annotation)
            if (node.start, node.end) <= (start, end):
                visit(node.right)

        visit(self._root)
        return res

    def overlapping(self, start, end):
        """
        Annotations whose span overlaps `[start, end)`, that is
        `a.start < end and start < a.end`
        """
        res = []

        def visit(node):
            "collect matches in order, pruning on max end"
            if node is None or node.max_end <= start:
                return
            visit(node.left)
            if node.start < end:
                if start < node.end:
                    res.append(node.annotation)
                visit(node.right)

        visit(self._root)
        return res

    def contained_in(self, start, end):
        """
        Annotations whose span lies within `[start, end)`
        """
        res = []

        def visit(node):
            "collect matches in order, pruning on start"
            if node is None:
                return
            if node.start >= start:
                visit(node.left)
                if node.end <= end:
                    res.append(node.annotation)
            if node.start <= end:
                visit(node.right)

        visit(self._root)
        return res

    def enclosing(self, start, end):
        """
        Annotations whose span covers `[start, end)`
        """
        res = []

        def visit(node):
            "collect matches in order, pruning on max end and start"
            if node is None or node.max_end < end:
                return
            visit(node.left)
            if node.start <= start:
                if node.end >= end:
                    res.append(node.annotation)
                visit(node.right)

        visit(self._root)
        return res

    def starting_at(self, start):
        """
        Annotations whose span starts at the given offset
        """
        res = []

        def visit(node):
            "collect matches in order"
            if node is None:
                return
            if node.start >= start:
                visit(node.left)
            if node.start == start:
                res.append(node.annotation)
            if node.start <= start:
                visit(node.right)

        visit(self._root)
        return res
