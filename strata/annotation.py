"""
Positional representation of document annotations.

A `Document` owns its text and every `Annotation` made over it.
Annotations are typed (see `strata.types`), cover a `Span` of the
text, carry a bag of attribute values and a list of outgoing
`Relation` to other annotations of the same document.

Relations point to their target by id; the target annotation is
looked up through the owning document when asked for, so an
annotation never owns the annotations it points to.

Documents also keep track of which types have been "completed", that
is fully produced by some annotator (see `strata.processing`), and
which annotator that was.
"""

# Author: Eric Kow
# License: BSD3

# pylint: disable=too-many-arguments, protected-access
# pylint: disable=too-few-public-methods

import itertools
import uuid
from collections import namedtuple

from frozendict import frozendict

from .attribute import check_value
from .language import Language
from .spanindex import AnnotationTree
from .types import (AnnotationType, AttributeType, RelationType,
                    SENTENCE, TOKEN, as_type)


class Span:
    """
    What portion of text an annotation corresponds to.
    Assumed to be in terms of character offsets

    The way we interpret spans amounts to how Python
    interprets array slice indices.

    One way to understand them is to think of offsets as
    sitting in between individual characters ::

          h   o   w   d   y
        0   1   2   3   4   5

    So `(0,5)` covers the whole word above, and `(1,2)`
    picks out the letter "o"
    """
    __slots__ = ['char_start', 'char_end']

    def __init__(self, start, end):
        if start < 0 or end < start:
            raise ValueError('Invalid span (%d,%d)' % (start, end))
        self.char_start = start
        self.char_end = end

    def __str__(self):
        return '(%d,%d)' % (self.char_start, self.char_end)

    def __repr__(self):
        return 'Span(%d, %d)' % (self.char_start, self.char_end)

    def _tuple(self):
        return (self.char_start, self.char_end)

    def __lt__(self, other):
        return self._tuple() < other._tuple()

    def __le__(self, other):
        return self._tuple() <= other._tuple()

    def __gt__(self, other):
        return other < self

    def __ge__(self, other):
        return other <= self

    def __eq__(self, other):
        return isinstance(other, Span) and self._tuple() == other._tuple()

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash(self._tuple())

    def length(self):
        """
        Return the length of this span
        """
        return self.char_end - self.char_start

    def shift(self, offset):
        """
        Return a copy of this span, shifted to the right
        (if offset is positive) or left (if negative).
        """
        return Span(self.char_start + offset, self.char_end + offset)

    def contains(self, other):
        """
        Return True if the other span lies entirely within this one

        Note that `x.contains(x) == True`

        Corner case: `x.contains(None) == False`
        """
        if other is None:
            return False
        return\
            self.char_start <= other.char_start and\
            self.char_end >= other.char_end

    def during(self, other):
        """
        Return True if this span lies entirely within the other
        (`x.during(y) == y.contains(x)`)
        """
        return other is not None and other.contains(self)

    def starts_with(self, other):
        """
        Return True if both spans start at the same offset,
        regardless of where they end
        """
        return other is not None and self.char_start == other.char_start

    def overlaps(self, other):
        """
        Return True if the two spans overlap, that is ::

            self.start < other.end and other.start < self.end

        Spans with touching edges do not overlap ::

            Span(5, 10).overlaps(Span(10, 12)) == False
        """
        if other is None:
            return False
        return\
            self.char_start < other.char_end and\
            other.char_start < self.char_end

    def intersection(self, other):
        """
        Return the overlapping region if two spans overlap, or else
        None ::

            Span(5, 10).intersection(Span(8, 12)) == Span(8, 10)
            Span(5, 10).intersection(Span(11, 12)) == None
        """
        if not self.overlaps(other):
            return None
        return Span(max(self.char_start, other.char_start),
                    min(self.char_end, other.char_end))

    def merge(self, other):
        """
        Return a span that stretches from the beginning to the
        end of the two spans. Whereas `intersection` can be thought of
        as returning the intersection of two spans, this can be
        thought of as returning the union.
        """
        big_start = min(self.char_start, other.char_start)
        big_end = max(self.char_end, other.char_end)
        return Span(big_start, big_end)

    @classmethod
    def merge_all(cls, spans):
        """
        Return a span that stretches from the beginning to the end
        of all the spans in the list
        """
        spans = list(spans)
        if len(spans) < 1:
            raise ValueError("must have at least one span")
        big_start = min(x.char_start for x in spans)
        big_end = max(x.char_end for x in spans)
        return Span(big_start, big_end)


def _as_span(thing):
    "span of an annotation, or the span itself"
    return thing if isinstance(thing, Span) else thing.span


Relation = namedtuple('Relation', 'type target value reciprocal')
"""
An outgoing typed edge from one annotation to another.

* type: `RelationType`
* target: id of the target annotation (in the same document)
* value: optional string label, eg. `nsubj` for a dependency
* reciprocal: True if the target holds the inverse edge
"""


Completion = namedtuple('Completion', 'completed provider')
"""
Entry in a document's completion table: whether the type has been
completed, and the identity of the annotator that did it
"""


class Annotation:
    """
    A typed span of text with attributes and relations.

    Annotations are made with `Document.create_annotation`; they
    belong to that document for life.

    Annotations compare by identity and sort in document order.
    """
    def __init__(self, document, anno_id, span, atype):
        self._document = document
        self.id = anno_id
        self.span = span
        self.type = atype
        self._attributes = {}
        self._relations = []

    def __str__(self):
        return '%s [%s] %s %s' % (self.id, self.type, self.span,
                                  self.text)

    def __repr__(self):
        return 'Annotation(%d, %s, %r)' % (self.id, self.type, self.span)

    def __lt__(self, other):
        return (self.span.char_start, self.span.char_end, self.id) <\
            (other.span.char_start, other.span.char_end, other.id)

    @property
    def document(self):
        "the document that owns this annotation"
        return self._document

    @property
    def start(self):
        "start offset"
        return self.span.char_start

    @property
    def end(self):
        "end offset"
        return self.span.char_end

    @property
    def text(self):
        "the covered text"
        return self._document.text_of(self.span)

    def is_instance(self, atype):
        """
        True if this annotation counts as being of the given type
        (see `AnnotationType.is_instance`)
        """
        return self.type.is_instance(atype)

    # -----------------------------------------------------------------
    # attributes
    # -----------------------------------------------------------------

    def get(self, attribute, default=None):
        """
        Value of an attribute, or the default if unset
        """
        return self._attributes.get(_as_attribute(attribute), default)

    def put(self, attribute, value, type_check=True):
        """
        Set an attribute value (setting `None` unsets it)

        :raises AttributeValueError: value of the wrong type for the
            attribute (unless `type_check` is False)
        """
        attribute = _as_attribute(attribute)
        check_value(attribute, value, type_check=type_check)
        if value is None:
            self._attributes.pop(attribute, None)
        else:
            self._attributes[attribute] = value

    def update(self, attributes, type_check=True):
        """
        Set several attributes at once from a dictionary
        """
        for key, value in attributes.items():
            self.put(key, value, type_check=type_check)

    def has(self, attribute):
        "True if the attribute is set"
        return _as_attribute(attribute) in self._attributes

    def remove_attribute(self, attribute):
        """
        Unset an attribute, returning its old value (or None)
        """
        return self._attributes.pop(_as_attribute(attribute), None)

    def attributes(self):
        """
        Snapshot of the attributes set on this annotation
        """
        return frozendict(self._attributes)

    # -----------------------------------------------------------------
    # relations
    # -----------------------------------------------------------------

    def add_relation(self, rtype, target, value=None, reciprocal=False):
        """
        Add a relation from this annotation to the target annotation.

        If `reciprocal` the target also gets the inverse edge back to
        this annotation.
        """
        if target.document is not self._document:
            raise ValueError('Relations must link annotations of the '
                             'same document')
        rtype = _as_relation(rtype)
        self._relations.append(Relation(rtype, target.id, value, reciprocal))
        if reciprocal:
            target._relations.append(Relation(rtype, self.id, value,
                                              reciprocal))

    def remove_relation(self, relation):
        """
        Remove one of this annotation's relations
        """
        self._relations.remove(relation)

    def relations(self, rtype=None):
        """
        Outgoing relations, optionally restricted to a relation type
        """
        if rtype is None:
            return list(self._relations)
        rtype = _as_relation(rtype)
        return [r for r in self._relations if r.type is rtype]

    def targets(self, rtype=None):
        """
        Annotations this one has relations to
        """
        return [self._document.annotation(r.target)
                for r in self.relations(rtype)
                if self._document.annotation(r.target) is not None]

    def sources(self, rtype=None):
        """
        Annotations which have relations to this one
        """
        rtype = None if rtype is None else _as_relation(rtype)
        return [a for a in self._document.annotations()
                if any(r.target == self.id and
                       (rtype is None or r.type is rtype)
                       for r in a._relations)]

    # -----------------------------------------------------------------
    # span queries relative to this annotation
    # -----------------------------------------------------------------

    def overlapping(self, atype=None):
        "annotations of the given type overlapping this one"
        return [a for a in self._document.overlapping(self.span, atype)
                if a is not self]

    def contained(self, atype=None):
        "annotations of the given type within this one"
        return [a for a in self._document.contained(self.span, atype)
                if a is not self]

    def enclosing(self, atype=None):
        "annotations of the given type covering this one"
        return [a for a in self._document.enclosing(self.span, atype)
                if a is not self]

    def starting_here(self, atype=None):
        "annotations of the given type starting where this one does"
        return [a for a in self._document.starting_here(self.span, atype)
                if a is not self]

    def first(self, atype):
        "first annotation of the given type overlapping this one"
        found = self.overlapping(atype)
        return found[0] if found else None

    def last(self, atype):
        "last annotation of the given type overlapping this one"
        found = self.overlapping(atype)
        return found[-1] if found else None

    def tokens(self):
        "tokens overlapping this annotation"
        return self.overlapping(TOKEN)

    def sentences(self):
        "sentences overlapping this annotation"
        return self.overlapping(SENTENCE)


def _as_attribute(thing):
    if isinstance(thing, AttributeType):
        return thing
    return AttributeType.create(thing)


def _as_relation(thing):
    if isinstance(thing, RelationType):
        return thing
    return RelationType.create(thing)


def _as_annotation_type(thing):
    if thing is None or isinstance(thing, AnnotationType):
        return thing
    return AnnotationType.create(thing)


class Document:
    """
    A text and its annotations.

    Annotations are indexed by span (see `strata.spanindex`), so that
    span queries (`overlapping`, `contained`, `enclosing`,
    `starting_here`) can be answered quickly; all of them return
    annotations in document order and accept an optional annotation
    type to filter on (annotations of subtypes and of the gold
    standard counterpart count as matches).

    Documents are not meant to be annotated from several threads at
    once, but a finished document may be queried from many.
    """
    def __init__(self, text, doc_id=None, language=Language.ENGLISH,
                 attributes=None):
        self._text = text
        self.id = doc_id if doc_id is not None else uuid.uuid4().hex
        self.language = Language.from_code(language)
        self._attributes = {}
        self._completed = {}
        self._index = AnnotationTree()
        self._by_id = {}
        self._next_id = itertools.count()
        if attributes:
            for key, value in attributes.items():
                self.put(key, value)

    def __str__(self):
        return self._text

    def __repr__(self):
        return 'Document(%r, %d chars, %d annotations)' %\
            (self.id, len(self._text), len(self._by_id))

    def __len__(self):
        return len(self._text)

    @property
    def text(self):
        "the document text"
        return self._text

    @property
    def span(self):
        "the span of the whole document"
        return Span(0, len(self._text))

    def text_of(self, span):
        """
        Return the text associated with a span (or annotation)
        """
        span = _as_span(span)
        return self._text[span.char_start:span.char_end]

    # -----------------------------------------------------------------
    # document level attributes
    # -----------------------------------------------------------------

    def get(self, attribute, default=None):
        "value of a document level attribute"
        return self._attributes.get(_as_attribute(attribute), default)

    def put(self, attribute, value, type_check=True):
        "set a document level attribute (`None` unsets it)"
        attribute = _as_attribute(attribute)
        check_value(attribute, value, type_check=type_check)
        if value is None:
            self._attributes.pop(attribute, None)
        else:
            self._attributes[attribute] = value

    def attributes(self):
        "snapshot of the document level attributes"
        return frozendict(self._attributes)

    # -----------------------------------------------------------------
    # annotations
    # -----------------------------------------------------------------

    def create_annotation(self, atype, start, end, attributes=None,
                          anno_id=None):
        """
        Create a new annotation over `[start, end)`.

        `anno_id` is only for readers restoring a serialised document;
        ids are otherwise handed out in increasing order.
        """
        atype = _as_annotation_type(atype)
        if end > len(self._text):
            raise ValueError('Span (%d,%d) is beyond the end of the document '
                             '(%d)' % (start, end, len(self._text)))
        if anno_id is None:
            anno_id = next(self._next_id)
        elif anno_id in self._by_id:
            raise ValueError('Duplicate annotation id: %s' % anno_id)
        else:
            self._bump_ids(anno_id)
        anno = Annotation(self, anno_id, Span(start, end), atype)
        if attributes:
            anno.update(attributes)
        self._by_id[anno_id] = anno
        self._index.add(anno)
        return anno

    def _bump_ids(self, anno_id):
        "make sure fresh ids come after a restored one"
        upcoming = next(self._next_id)
        self._next_id = itertools.count(max(upcoming, anno_id + 1))

    def remove_annotation(self, annotation):
        """
        Remove an annotation from the document.

        Return True if it was there to be removed
        """
        if self._by_id.get(annotation.id) is not annotation:
            return False
        del self._by_id[annotation.id]
        return self._index.remove(annotation)

    def annotation(self, anno_id):
        """
        The annotation with this id, or None
        """
        return self._by_id.get(anno_id)

    def has_annotation(self, annotation):
        "True if the annotation belongs to (and is indexed in) the document"
        return annotation in self._index and\
            self._by_id.get(annotation.id) is annotation

    def has_span(self, span, atype=None):
        """
        True if there is an annotation (of the given type) with
        exactly this span
        """
        span = _as_span(span)
        return bool(self._filter(self._index.at_span(span.char_start,
                                                     span.char_end),
                                 atype))

    def annotations(self, atype=None):
        """
        All annotations (of the given type) in document order
        """
        return self._filter(self._index, atype)

    def _filter(self, annotations, atype):
        atype = _as_annotation_type(atype)
        if atype is None:
            return list(annotations)
        return [a for a in annotations if a.type.is_instance(atype)]

    def overlapping(self, span, atype=None):
        """
        Annotations (of the given type) overlapping the span
        """
        span = _as_span(span)
        return self._filter(self._index.overlapping(span.char_start,
                                                    span.char_end),
                            atype)

    def contained(self, span, atype=None):
        """
        Annotations (of the given type) lying within the span
        """
        span = _as_span(span)
        return self._filter(self._index.contained_in(span.char_start,
                                                     span.char_end),
                            atype)

    def enclosing(self, span, atype=None):
        """
        Annotations (of the given type) covering the span
        (the span is "during" them)
        """
        span = _as_span(span)
        return self._filter(self._index.enclosing(span.char_start,
                                                  span.char_end),
                            atype)

    def starting_here(self, span, atype=None):
        """
        Annotations (of the given type) starting where the span does
        """
        span = _as_span(span)
        return self._filter(self._index.starting_at(span.char_start), atype)

    def first(self, atype):
        "first annotation of a type in the document, or None"
        found = self.annotations(atype)
        return found[0] if found else None

    def last(self, atype):
        "last annotation of a type in the document, or None"
        found = self.annotations(atype)
        return found[-1] if found else None

    def tokens(self):
        "all tokens, in order"
        return self.annotations(TOKEN)

    def sentences(self):
        "all sentences, in order"
        return self.annotations(SENTENCE)

    # -----------------------------------------------------------------
    # completion
    # -----------------------------------------------------------------

    def is_completed(self, atype):
        """
        True if the type has been fully produced for this document
        """
        atype = as_type(atype)
        entry = self._completed.get(atype)
        return entry is not None and entry.completed

    def set_completed(self, atype, completed=True, provider=None):
        """
        Mark a type as completed (or not) by some annotator.

        Un-completing a type forgets its provider.
        """
        atype = as_type(atype)
        if completed:
            self._completed[atype] = Completion(True, provider)
        else:
            self._completed.pop(atype, None)

    def provider(self, atype):
        """
        Identity of the annotator that completed the type, or None
        """
        atype = as_type(atype)
        entry = self._completed.get(atype)
        return entry.provider if entry is not None else None

    def completed(self):
        """
        Mapping from completed types to their provider
        """
        return frozendict((k, v.provider) for k, v in self._completed.items()
                          if v.completed)

    # -----------------------------------------------------------------
    # graphs
    # -----------------------------------------------------------------

    def relation_graph(self, rtypes=None):
        """
        Graph of the relations between this document's annotations
        (see `strata.graph.RelationGraph.from_document`)
        """
        from .graph import RelationGraph
        return RelationGraph.from_document(self, rtypes)
