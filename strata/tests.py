# -*- coding: utf-8 -*-
#
# Author: Eric Kow
# License: BSD3
# pylint: disable=too-many-public-methods, invalid-name

"""
Tests for strata
"""

import datetime
import pickle
import random
import threading
import unittest
import warnings
from enum import Enum
from fractions import Fraction

from strata.annotation import Document, Span
from strata.attribute import (AttributeValueError, Codec, check_value,
                              decode_value, encode_value, register_codec,
                              set_type_checking)
from strata.graph import RelationEdge, RelationGraph
from strata.language import Language
from strata.spanindex import AnnotationTree
from strata.types import (AnnotationType, AttributeType, RelationType,
                          TypeDefinitionError, UndefinedTypeError,
                          ConfigurationError,
                          as_type, from_string, to_string, normalize_name,
                          CONFIDENCE, DEPENDENCY, INDEX, LANGUAGE, LEMMA,
                          PART_OF_SPEECH, ROOT, TOKEN, SENTENCE)

# ---------------------------------------------------------------------
# spans
# ---------------------------------------------------------------------


class SpanTest(unittest.TestCase):
    "tests for strata.annotation.Span"

    def __init__(self, *args, **kwargs):
        super(SpanTest, self).__init__(*args, **kwargs)
        self.addTypeEqualityFunc(Span, self.assertEqualStrFail)

    def assertEqualStrFail(self, a, b, msg):
        """
        just like assertEqual but display both sides with str on failure
        """
        if a != b:
            msg = msg or "{0} != {1}".format(a, b)
            raise self.failureException(msg)

    def assertOverlap(self, expected, pair1, pair2):
        "true if `pair1.intersection(pair2) == expected` (modulo boxing)"
        (x1, y1) = pair1
        (x2, y2) = pair2
        (rx, ry) = expected
        self.assertTrue(Span(x1, y1).overlaps(Span(x2, y2)))
        self.assertEqual(Span(rx, ry), Span(x1, y1).intersection(Span(x2, y2)))

    def assertNotOverlap(self, pair1, pair2):
        "true if the spans do not overlap (modulo boxing)"
        (x1, y1) = pair1
        (x2, y2) = pair2
        self.assertFalse(Span(x1, y1).overlaps(Span(x2, y2)))
        self.assertIsNone(Span(x1, y1).intersection(Span(x2, y2)))

    def test_overlap(self):
        "Span.overlaps() function"

        self.assertNotOverlap((5, 10), (11, 12))
        self.assertNotOverlap((11, 12), (5, 10))

        # should not overlap at edges
        self.assertNotOverlap((5, 10), (10, 15))
        self.assertNotOverlap((10, 15), (5, 10))

        self.assertOverlap((6, 9), (5, 10), (6, 9))
        self.assertOverlap((6, 9), (6, 9), (5, 10))
        self.assertOverlap((7, 10), (5, 10), (7, 12))
        self.assertOverlap((7, 10), (7, 12), (5, 10))

    def test_overlap_empty(self):
        "Span.overlaps() on empty spans"
        self.assertTrue(Span(5, 5).overlaps(Span(4, 6)))
        self.assertFalse(Span(5, 5).overlaps(Span(4, 5)))
        self.assertFalse(Span(5, 5).overlaps(Span(5, 6)))
        self.assertFalse(Span(5, 5).overlaps(None))

    def test_invalid(self):
        self.assertRaises(ValueError, Span, -1, 3)
        self.assertRaises(ValueError, Span, 4, 3)
        self.assertEqual(0, Span(3, 3).length())

    def test_contains_during(self):
        big = Span(0, 10)
        small = Span(2, 4)
        self.assertTrue(big.contains(small))
        self.assertTrue(big.contains(big))
        self.assertFalse(small.contains(big))
        self.assertTrue(small.during(big))
        self.assertFalse(big.during(small))
        self.assertFalse(big.contains(None))

    def test_starts_with(self):
        self.assertTrue(Span(3, 4).starts_with(Span(3, 10)))
        self.assertFalse(Span(3, 4).starts_with(Span(2, 4)))

    def test_merge(self):
        self.assertEqual(Span(2, 12), Span(2, 5).merge(Span(8, 12)))
        self.assertEqual(Span(1, 9),
                         Span.merge_all([Span(3, 4), Span(1, 2), Span(5, 9)]))
        self.assertRaises(ValueError, Span.merge_all, [])

    def test_shift(self):
        self.assertEqual(Span(5, 8), Span(2, 5).shift(3))
        self.assertEqual(Span(0, 3), Span(2, 5).shift(-2))

    def test_order(self):
        spans = [Span(2, 8), Span(0, 10), Span(0, 5)]
        self.assertEqual([Span(0, 5), Span(0, 10), Span(2, 8)],
                         sorted(spans))
        self.assertEqual(hash(Span(1, 2)), hash(Span(1, 2)))

# ---------------------------------------------------------------------
# types
# ---------------------------------------------------------------------


class TypeTest(unittest.TestCase):
    "tests for strata.types"

    def test_normalize(self):
        self.assertEqual('PART_OF_SPEECH', normalize_name(' part-of speech '))
        self.assertEqual('@TOKEN', normalize_name('@token'))
        self.assertRaises(TypeDefinitionError, normalize_name, '   ')
        self.assertRaises(TypeDefinitionError, normalize_name, '@')

    def test_interned(self):
        t1 = AnnotationType.create('test-interned')
        t2 = AnnotationType.create('TEST_INTERNED')
        t3 = AnnotationType.create('Test interned')
        self.assertIs(t1, t2)
        self.assertIs(t1, t3)
        self.assertIs(TOKEN, AnnotationType.create('token'))
        # families are separate
        attr = AttributeType.create('test-interned')
        self.assertIsNot(t1, attr)

    def test_blank(self):
        self.assertRaises(TypeDefinitionError, AnnotationType.create, '')
        self.assertRaises(TypeDefinitionError, AnnotationType.create, '  ')
        self.assertRaises(ConfigurationError, RelationType.create, '')

    def test_conflicting_parent(self):
        parent_a = AnnotationType.create('TEST_PARENT_A')
        parent_b = AnnotationType.create('TEST_PARENT_B')
        child = AnnotationType.create('TEST_CONFLICT', parent_a)
        self.assertIs(child, AnnotationType.create('TEST_CONFLICT', parent_a))
        # no parent means "whatever it is"
        self.assertIs(child, AnnotationType.create('TEST_CONFLICT'))
        self.assertRaises(TypeDefinitionError,
                          AnnotationType.create, 'TEST_CONFLICT', parent_b)

    def test_late_parent(self):
        AnnotationType.create('TEST_LATE')
        other = AnnotationType.create('TEST_LATE_OTHER')
        self.assertRaises(TypeDefinitionError,
                          AnnotationType.create, 'TEST_LATE', other)

    def test_own_parent(self):
        selfish = AnnotationType.create('TEST_SELFISH')
        self.assertRaises(TypeDefinitionError,
                          AnnotationType.create, 'TEST_SELFISH', selfish)

    def test_root(self):
        self.assertIsNone(ROOT.parent)
        self.assertTrue(ROOT.is_instance(ROOT))
        self.assertEqual([], ROOT.ancestors())
        self.assertIs(ROOT, TOKEN.parent)
        self.assertEqual([ROOT], TOKEN.ancestors())

    def test_hierarchy(self):
        word = AnnotationType.create('TEST_WORD', TOKEN)
        noun = AnnotationType.create('TEST_NOUN', word)
        self.assertEqual([word, TOKEN, ROOT], noun.ancestors())
        self.assertTrue(noun.is_instance(noun))
        self.assertTrue(noun.is_instance(word))
        self.assertTrue(noun.is_instance(TOKEN))
        self.assertTrue(noun.is_instance(ROOT))
        self.assertFalse(word.is_instance(noun))
        self.assertFalse(noun.is_instance(SENTENCE))
        self.assertFalse(noun.is_instance(LEMMA))
        # gold standard duals of ancestors count too
        self.assertTrue(noun.is_instance(TOKEN.gold_standard_version()))
        self.assertTrue(noun.gold_standard_version().is_instance(TOKEN))

    def test_gold_standard(self):
        auto = AnnotationType.create('TEST_GOLDEN', TOKEN, [PART_OF_SPEECH])
        gold = auto.gold_standard_version()
        self.assertEqual('@TEST_GOLDEN', gold.name)
        self.assertTrue(gold.is_gold_standard())
        self.assertFalse(auto.is_gold_standard())
        self.assertIs(gold, AnnotationType.create('@test golden'))
        self.assertIs(auto, gold.non_gold_standard_version())
        self.assertIs(gold, gold.gold_standard_version())
        self.assertIs(auto.non_gold_standard_version(),
                      auto.gold_standard_version().non_gold_standard_version())
        # structure lives on the bare name
        self.assertIs(TOKEN, gold.parent)
        self.assertEqual(auto.declared_attributes(),
                         gold.declared_attributes())
        self.assertTrue(gold.is_instance(auto))
        self.assertTrue(auto.is_instance(gold))

    def test_gold_first(self):
        gold = AnnotationType.create('@TEST_GOLD_FIRST', TOKEN)
        auto = AnnotationType.create('TEST_GOLD_FIRST')
        self.assertIs(auto, gold.non_gold_standard_version())
        self.assertIs(TOKEN, auto.parent)

    def test_declared_attributes(self):
        word = AnnotationType.create('TEST_ATTR_WORD', TOKEN, [CONFIDENCE])
        self.assertEqual(frozenset([CONFIDENCE]), word.attributes())
        self.assertEqual(frozenset([CONFIDENCE, INDEX, PART_OF_SPEECH, LEMMA]),
                         word.declared_attributes())
        self.assertRaises(TypeDefinitionError,
                          AnnotationType.create, 'TEST_ATTR_WORD',
                          TOKEN, [LEMMA])
        # names work as well as attribute types
        self.assertIs(word, AnnotationType.create('TEST_ATTR_WORD', TOKEN,
                                                  ['confidence']))

    def test_lookup(self):
        self.assertTrue(AnnotationType.is_defined('token'))
        self.assertFalse(AnnotationType.is_defined('TEST_NEVER_DEFINED'))
        self.assertFalse(AnnotationType.is_defined(''))
        self.assertIs(TOKEN, AnnotationType.value_of('Token'))
        self.assertRaises(UndefinedTypeError,
                          AnnotationType.value_of, 'TEST_NEVER_DEFINED')
        self.assertIn(TOKEN, AnnotationType.values())
        self.assertNotIn(TOKEN, AttributeType.values())
        self.assertIn(DEPENDENCY, RelationType.values())

    def test_attribute_value_type(self):
        attr = AttributeType.create('TEST_WEIGHT', float)
        self.assertIs(float, attr.value_type)
        self.assertIs(attr, AttributeType.create('test weight'))
        self.assertIs(attr, AttributeType.create('test weight', float))
        self.assertRaises(TypeDefinitionError,
                          AttributeType.create, 'TEST_WEIGHT', int)
        self.assertRaises(TypeDefinitionError,
                          AttributeType.create, '@TEST_WEIGHT')

    def test_strings(self):
        self.assertEqual('annotation.TOKEN', to_string(TOKEN))
        self.assertIs(TOKEN, from_string('annotation.token'))
        self.assertIs(LEMMA, from_string('attribute.lemma'))
        self.assertIs(DEPENDENCY, from_string('Relation.dependency'))
        self.assertIs(TOKEN, from_string('TOKEN'))
        self.assertIs(LEMMA, from_string('lemma'))
        fresh = from_string('annotation.test_from_string')
        self.assertIs(fresh, AnnotationType.value_of('TEST_FROM_STRING'))
        self.assertRaises(UndefinedTypeError, from_string, 'TEST_NOWHERE')
        self.assertRaises(UndefinedTypeError, from_string, 'bogus.TOKEN')
        for atype in [TOKEN, LEMMA, DEPENDENCY,
                      TOKEN.gold_standard_version()]:
            self.assertIs(atype, from_string(to_string(atype)))

    def test_as_type(self):
        self.assertIs(TOKEN, as_type(TOKEN))
        self.assertIs(TOKEN, as_type('token'))
        self.assertIs(LEMMA, as_type('attribute.lemma'))
        self.assertIsNone(as_type(None))
        fresh = as_type('test as type')
        self.assertIs(fresh, AnnotationType.value_of('TEST_AS_TYPE'))

    def test_pickle(self):
        for atype in [ROOT, TOKEN, TOKEN.gold_standard_version(),
                      LANGUAGE, DEPENDENCY]:
            self.assertIs(atype, pickle.loads(pickle.dumps(atype)))

    def test_concurrent_create(self):
        found = []

        def work():
            "register the same type a few times"
            for _ in range(50):
                found.append(AnnotationType.create('TEST_CONCURRENT', TOKEN))

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(400, len(found))
        self.assertEqual(1, len(set(id(x) for x in found)))

# ---------------------------------------------------------------------
# attributes
# ---------------------------------------------------------------------


class Colour(Enum):
    "an enumeration for attribute values"
    RED = 1
    GREEN = 2


class AttributeTest(unittest.TestCase):
    "tests for strata.attribute"

    def test_check(self):
        check_value(INDEX, 3)
        check_value(INDEX, None)
        check_value(CONFIDENCE, 1)
        check_value(CONFIDENCE, 0.5)
        self.assertRaises(AttributeValueError, check_value, INDEX, '3')
        self.assertRaises(AttributeValueError, check_value, INDEX, True)
        self.assertRaises(AttributeValueError, check_value, LANGUAGE, 'en')
        check_value(INDEX, '3', type_check=False)
        untyped = AttributeType.create('TEST_UNTYPED')
        check_value(untyped, object())

    def test_global_switch(self):
        set_type_checking(False)
        try:
            check_value(INDEX, 'three')
        finally:
            set_type_checking(True)
        self.assertRaises(AttributeValueError, check_value, INDEX, 'three')

    def test_builtin_codecs(self):
        self.assertEqual('fr', encode_value(LANGUAGE, Language.FRENCH))
        self.assertIs(Language.FRENCH, decode_value(LANGUAGE, 'fr'))
        self.assertEqual(3, decode_value(INDEX, encode_value(INDEX, 3)))
        self.assertIsNone(encode_value(INDEX, None))
        when = AttributeType.create('TEST_WHEN', datetime.date)
        self.assertEqual('2016-02-29',
                         encode_value(when, datetime.date(2016, 2, 29)))
        self.assertEqual(datetime.date(2016, 2, 29),
                         decode_value(when, '2016-02-29'))

    def test_enum_codec(self):
        colour = AttributeType.create('TEST_COLOUR', Colour)
        self.assertEqual('GREEN', encode_value(colour, Colour.GREEN))
        self.assertIs(Colour.GREEN, decode_value(colour, 'GREEN'))

    def test_custom_codec(self):
        register_codec(Fraction, Codec(str, lambda v, _: Fraction(v)))
        ratio = AttributeType.create('TEST_RATIO', Fraction)
        self.assertEqual('1/3', encode_value(ratio, Fraction(1, 3)))
        self.assertEqual(Fraction(1, 3), decode_value(ratio, '1/3'))
        # attribute level codecs win
        shouty = Codec(lambda v: v.upper(), lambda v, _: v.lower())
        loud = AttributeType.create('TEST_LOUD', str, shouty)
        self.assertEqual('HEY', encode_value(loud, 'hey'))
        self.assertEqual('hey', decode_value(loud, 'HEY'))

# ---------------------------------------------------------------------
# span index
# ---------------------------------------------------------------------

SPAN_TEST = AnnotationType.create('TEST_SPAN')
SPAN_OTHER = AnnotationType.create('TEST_SPAN_OTHER')


class SpanIndexTest(unittest.TestCase):
    "span queries on documents and the underlying tree"

    def setUp(self):
        self.doc = Document('abcdefghijklmnopqrstuvwxyz', doc_id='abc')
        self.a = self.doc.create_annotation(SPAN_TEST, 0, 5)
        self.b = self.doc.create_annotation(SPAN_TEST, 2, 8)
        self.c = self.doc.create_annotation(SPAN_TEST, 0, 10)

    def test_document_order(self):
        self.assertEqual([self.a, self.c, self.b], self.doc.annotations())

    def test_overlapping(self):
        a, b, c = self.a, self.b, self.c
        self.assertEqual([a, c, b], self.doc.overlapping(Span(3, 4)))
        self.assertEqual([c, b], self.doc.overlapping(Span(5, 9)))
        self.assertEqual([], self.doc.overlapping(Span(10, 12)))
        self.assertEqual([c, b], a.overlapping())
        self.assertEqual([c, b], self.doc.overlapping(Span(7, 8)))

    def test_contained(self):
        a, b, c = self.a, self.b, self.c
        self.assertEqual([a, b], c.contained())
        self.assertEqual([a, c, b], self.doc.contained(Span(0, 10)))
        self.assertEqual([a], self.doc.contained(Span(0, 6)))

    def test_during(self):
        a, b, c = self.a, self.b, self.c
        self.assertEqual([c], a.enclosing())
        self.assertEqual([c], b.enclosing())
        self.assertEqual([a, c, b], self.doc.enclosing(Span(3, 4)))

    def test_starting_here(self):
        a, c = self.a, self.c
        self.assertEqual([a, c], self.doc.starting_here(Span(0, 1)))
        self.assertEqual([c], a.starting_here())

    def test_first_last(self):
        self.assertIs(self.a, self.doc.first(SPAN_TEST))
        self.assertIs(self.b, self.doc.last(SPAN_TEST))
        self.assertIsNone(self.doc.first(SPAN_OTHER))

    def test_type_filter(self):
        other = self.doc.create_annotation(SPAN_OTHER, 3, 4)
        self.assertEqual([other], self.doc.overlapping(Span(3, 4),
                                                       SPAN_OTHER))
        self.assertEqual([self.a, self.c, self.b],
                         self.doc.overlapping(Span(3, 4), SPAN_TEST))
        self.assertEqual([other], self.c.contained('test span other'))

    def test_has_span(self):
        self.assertTrue(self.doc.has_span(Span(2, 8)))
        self.assertTrue(self.doc.has_span(Span(2, 8), SPAN_TEST))
        self.assertFalse(self.doc.has_span(Span(2, 8), SPAN_OTHER))
        self.assertFalse(self.doc.has_span(Span(2, 9)))

    def test_remove(self):
        self.assertTrue(self.doc.has_annotation(self.b))
        self.assertTrue(self.doc.remove_annotation(self.b))
        self.assertFalse(self.doc.remove_annotation(self.b))
        self.assertFalse(self.doc.has_annotation(self.b))
        self.assertIsNone(self.doc.annotation(self.b.id))
        self.assertEqual([self.a, self.c], self.doc.overlapping(Span(3, 4)))

    def test_tree_against_brute_force(self):
        rng = random.Random(1234)
        doc = Document('x' * 200)
        annos = []
        for _ in range(400):
            start = rng.randint(0, 190)
            end = rng.randint(start, min(200, start + rng.randint(0, 30)))
            annos.append(doc.create_annotation(SPAN_TEST, start, end))
        for anno in rng.sample(annos, 100):
            doc.remove_annotation(anno)
            annos.remove(anno)
        tree = AnnotationTree(annos)
        self.assertEqual(len(annos), len(tree))

        def in_order(things):
            "sorted in document order"
            return sorted(things, key=lambda x: (x.start, x.end, x.id))

        self.assertEqual(in_order(annos), list(tree))
        self.assertEqual(in_order(annos), doc.annotations())
        for _ in range(100):
            start = rng.randint(0, 195)
            end = rng.randint(start, 200)
            span = Span(start, end)
            self.assertEqual(
                in_order(x for x in annos if x.span.overlaps(span)),
                doc.overlapping(span))
            self.assertEqual(
                in_order(x for x in annos if span.contains(x.span)),
                doc.contained(span))
            self.assertEqual(
                in_order(x for x in annos if x.span.contains(span)),
                doc.enclosing(span))
            self.assertEqual(
                in_order(x for x in annos if x.start == start),
                doc.starting_here(span))
        for anno in annos:
            self.assertIn(anno, tree)
            self.assertTrue(tree.remove(anno))
        self.assertEqual(0, len(tree))
        self.assertEqual([], list(tree))

# ---------------------------------------------------------------------
# documents
# ---------------------------------------------------------------------


class DocumentTest(unittest.TestCase):
    "tests for strata.annotation.Document"

    def setUp(self):
        self.doc = Document('John saw Mary.', doc_id='d1')

    def test_basics(self):
        self.assertEqual('d1', self.doc.id)
        self.assertEqual(14, len(self.doc))
        self.assertIs(Language.ENGLISH, self.doc.language)
        self.assertEqual(Span(0, 14), self.doc.span)
        french = Document('Bonjour', language='fr')
        self.assertIs(Language.FRENCH, french.language)
        self.assertNotEqual(Document('x').id, Document('x').id)

    def test_ids(self):
        t1 = self.doc.create_annotation(TOKEN, 0, 4)
        t2 = self.doc.create_annotation(TOKEN, 5, 8)
        t3 = self.doc.create_annotation('token', 9, 13)
        self.assertEqual([0, 1, 2], [t1.id, t2.id, t3.id])
        self.assertIs(t2, self.doc.annotation(1))
        self.assertEqual('saw', t2.text)
        self.assertEqual('Mary', self.doc.text_of(t3))
        self.assertIs(self.doc, t1.document)
        self.doc.remove_annotation(t3)
        self.assertEqual(3, self.doc.create_annotation(TOKEN, 9, 13).id)

    def test_restored_ids(self):
        anno = self.doc.create_annotation(TOKEN, 0, 4, anno_id=7)
        self.assertEqual(7, anno.id)
        self.assertEqual(8, self.doc.create_annotation(TOKEN, 5, 8).id)
        self.assertRaises(ValueError, self.doc.create_annotation,
                          TOKEN, 9, 13, anno_id=7)

    def test_bad_span(self):
        self.assertRaises(ValueError, self.doc.create_annotation,
                          TOKEN, 10, 20)
        self.assertRaises(ValueError, self.doc.create_annotation,
                          TOKEN, 5, 2)

    def test_attributes(self):
        tok = self.doc.create_annotation(TOKEN, 0, 4,
                                         {PART_OF_SPEECH: 'NNP',
                                          'index': 0})
        self.assertEqual('NNP', tok.get(PART_OF_SPEECH))
        self.assertEqual(0, tok.get(INDEX))
        self.assertEqual('NNP', tok.get('part of speech'))
        self.assertTrue(tok.has(INDEX))
        self.assertRaises(AttributeValueError, tok.put, INDEX, 'zero')
        tok.put(INDEX, 'zero', type_check=False)
        self.assertEqual('zero', tok.get(INDEX))
        tok.put(INDEX, None)
        self.assertFalse(tok.has(INDEX))
        self.assertEqual('NNP', tok.remove_attribute(PART_OF_SPEECH))
        self.assertIsNone(tok.get(PART_OF_SPEECH))
        self.assertEqual('?', tok.get(PART_OF_SPEECH, '?'))
        self.assertEqual({}, dict(tok.attributes()))

    def test_document_attributes(self):
        doc = Document('x', attributes={'title': 'Hello'})
        self.assertEqual('Hello', doc.get('TITLE'))
        self.assertRaises(AttributeValueError, doc.put, 'title', 3)

    def test_type_filter(self):
        word = AnnotationType.create('TEST_DOC_WORD', TOKEN)
        t1 = self.doc.create_annotation(TOKEN, 0, 4)
        t2 = self.doc.create_annotation(word, 5, 8)
        t3 = self.doc.create_annotation(TOKEN.gold_standard_version(), 9, 13)
        s1 = self.doc.create_annotation(SENTENCE, 0, 14)
        self.assertEqual([t1, t2, t3], self.doc.tokens())
        self.assertEqual([t2], self.doc.annotations(word))
        self.assertEqual([s1], self.doc.sentences())
        self.assertEqual([t1, s1, t2, t3], self.doc.annotations(ROOT))
        self.assertEqual([t1, t2, t3], s1.tokens())
        self.assertEqual([s1], t2.sentences())
        self.assertIs(t1, s1.first(TOKEN))
        self.assertIs(t3, s1.last(TOKEN))

    def test_completion(self):
        self.assertFalse(self.doc.is_completed(TOKEN))
        self.doc.set_completed(TOKEN, True, 'some.Tokenizer::1.0')
        self.assertTrue(self.doc.is_completed(TOKEN))
        self.assertEqual('some.Tokenizer::1.0', self.doc.provider(TOKEN))
        self.assertEqual({TOKEN: 'some.Tokenizer::1.0'},
                         dict(self.doc.completed()))
        self.doc.set_completed(TOKEN, False)
        self.assertFalse(self.doc.is_completed(TOKEN))
        self.assertIsNone(self.doc.provider(TOKEN))
        self.assertEqual({}, dict(self.doc.completed()))

    def test_completion_by_name(self):
        self.doc.set_completed('token', True, 'by name')
        self.assertTrue(self.doc.is_completed(TOKEN))
        self.assertTrue(self.doc.is_completed('annotation.TOKEN'))
        self.assertEqual('by name', self.doc.provider('Token'))
        self.assertEqual({TOKEN: 'by name'}, dict(self.doc.completed()))
        self.doc.set_completed('TOKEN', False)
        self.assertFalse(self.doc.is_completed(TOKEN))

    def test_relations(self):
        john = self.doc.create_annotation(TOKEN, 0, 4)
        saw = self.doc.create_annotation(TOKEN, 5, 8)
        mary = self.doc.create_annotation(TOKEN, 9, 13)
        john.add_relation(DEPENDENCY, saw, 'nsubj')
        mary.add_relation('dependency', saw, 'dobj')
        self.assertEqual([saw], john.targets())
        self.assertEqual([saw], john.targets(DEPENDENCY))
        self.assertEqual([], john.targets('TEST_OTHER_RELATION'))
        self.assertEqual([john, mary], saw.sources(DEPENDENCY))
        rel = john.relations()[0]
        self.assertIs(DEPENDENCY, rel.type)
        self.assertEqual(saw.id, rel.target)
        self.assertEqual('nsubj', rel.value)
        self.assertFalse(rel.reciprocal)
        john.remove_relation(rel)
        self.assertEqual([], john.relations())

    def test_reciprocal_relation(self):
        john = self.doc.create_annotation(TOKEN, 0, 4)
        mary = self.doc.create_annotation(TOKEN, 9, 13)
        coref = RelationType.create('TEST_COREF')
        john.add_relation(coref, mary, reciprocal=True)
        self.assertEqual([mary], john.targets(coref))
        self.assertEqual([john], mary.targets(coref))

    def test_foreign_relation(self):
        other = Document('elsewhere')
        john = self.doc.create_annotation(TOKEN, 0, 4)
        there = other.create_annotation(TOKEN, 0, 9)
        self.assertRaises(ValueError, john.add_relation, DEPENDENCY, there)

# ---------------------------------------------------------------------
# graphs
# ---------------------------------------------------------------------


class RelationGraphTest(unittest.TestCase):
    """
    tests for strata.graph

    The document has dependencies pointing from dependents to heads ::

        saw <-nsubj- John <-det- The
        saw <-relcl- smiled <-nsubj- who
    """

    def setUp(self):
        doc = Document('The John saw who smiled', doc_id='g1')
        self.the = doc.create_annotation(TOKEN, 0, 3)
        self.john = doc.create_annotation(TOKEN, 4, 8)
        self.saw = doc.create_annotation(TOKEN, 9, 12)
        self.who = doc.create_annotation(TOKEN, 13, 16)
        self.smiled = doc.create_annotation(TOKEN, 17, 23)
        self.john.add_relation(DEPENDENCY, self.saw, 'nsubj')
        self.smiled.add_relation(DEPENDENCY, self.saw, 'relcl')
        self.the.add_relation(DEPENDENCY, self.john, 'det')
        self.who.add_relation(DEPENDENCY, self.smiled, 'nsubj')
        self.doc = doc
        self.graph = doc.relation_graph()

    def test_structure(self):
        gra = self.graph
        self.assertEqual(5, len(gra.vertices()))
        self.assertEqual(4, len(gra.relation_edges()))
        edge = gra.relation_edge(self.john, self.saw)
        self.assertEqual('nsubj', edge.relation)
        self.assertIs(DEPENDENCY, edge.rtype)
        self.assertIsNone(gra.relation_edge(self.saw, self.john))
        self.assertEqual([self.john, self.smiled],
                         [e.source for e in gra.in_edges(self.saw)])
        self.assertEqual([self.saw],
                         [e.target for e in gra.out_edges(self.john)])

    def test_filter_relation_types(self):
        other = RelationType.create('TEST_GRAPH_OTHER')
        self.the.add_relation(other, self.saw)
        self.assertEqual(5, len(self.doc.relation_graph().relation_edges()))
        self.assertEqual(4, len(self.doc.relation_graph([DEPENDENCY])
                                .relation_edges()))
        only = self.doc.relation_graph(['test graph other'])
        self.assertEqual([other], [e.rtype for e in only.relation_edges()])
        self.assertEqual('TEST_GRAPH_OTHER', only.relation_edges()[0].relation)

    def test_subtree(self):
        gra = self.graph
        self.assertEqual(set([self.the, self.john, self.smiled]),
                         gra.subtree_nodes(self.saw))
        self.assertEqual(set([self.the, self.john, self.smiled, self.who]),
                         gra.subtree_nodes(self.saw, non_descending=[]))
        self.assertEqual(set([self.the, self.john]),
                         gra.subtree_nodes(self.saw, relations=['nsubj']))
        self.assertEqual(set([self.the]), gra.subtree_nodes(self.john))
        self.assertEqual(set(), gra.subtree_nodes(self.the))

    def test_subtree_span(self):
        gra = self.graph
        self.assertEqual(Span(0, 8), gra.subtree_span(self.john,
                                                      include_given=True))
        self.assertEqual(Span(0, 3), gra.subtree_span(self.john))
        self.assertIsNone(gra.subtree_span(self.the))
        self.assertEqual(Span(0, 23),
                         gra.subtree_span(self.saw, include_given=True))

    def test_shortest_path(self):
        gra = self.graph
        path = gra.shortest_path(self.the, self.saw)
        self.assertEqual([(self.the, self.john), (self.john, self.saw)],
                         [(e.source, e.target) for e in path])
        self.assertEqual([], gra.shortest_path(self.saw, self.the))
        self.assertEqual([], gra.shortest_path(self.the, self.the))

    def test_shortest_connection(self):
        gra = self.graph
        path = gra.shortest_connection(self.saw, self.the)
        self.assertEqual([(self.john, self.saw), (self.the, self.john)],
                         [(e.source, e.target) for e in path])
        self.assertEqual(4, len(gra.shortest_connection(self.the, self.who)))
        # removing an edge must be seen by the undirected view
        removed = gra.remove_relation_edge(self.smiled, self.saw)
        self.assertEqual('relcl', removed.value)
        self.assertEqual([], gra.shortest_connection(self.the, self.who))
        gra.add_relation_edge(removed)
        self.assertEqual(4, len(gra.shortest_connection(self.the, self.who)))

    def test_edits(self):
        gra = self.graph
        self.assertFalse(gra.add_relation_edge(
            RelationEdge(self.john, self.saw, DEPENDENCY, 'dobj')))
        self.assertEqual('nsubj', gra.relation_edge(self.john,
                                                    self.saw).value)
        removed = gra.remove_edge_if(lambda e: e.value == 'nsubj')
        self.assertEqual(2, len(removed))
        self.assertEqual(['det', 'relcl'],
                         sorted(e.value for e in gra.relation_edges()))
        self.assertIsNone(gra.remove_relation_edge(self.john, self.saw))

    def test_filters(self):
        gra = self.graph
        subjects = gra.filter_by_edge(lambda e: e.value == 'nsubj')
        self.assertEqual(2, len(subjects.relation_edges()))
        self.assertEqual([self.john, self.saw, self.who, self.smiled],
                         subjects.vertices())
        no_who = gra.filter_by_vertex(lambda v: v is not self.who)
        self.assertEqual(4, len(no_who.vertices()))
        self.assertEqual(3, len(no_who.relation_edges()))

    def test_from_edges(self):
        edges = [RelationEdge(self.john, self.saw, DEPENDENCY, 'nsubj'),
                 RelationEdge(self.who, self.saw, DEPENDENCY, weight=2.0)]
        gra = RelationGraph.from_edges(edges)
        self.assertEqual(3, len(gra.vertices()))
        self.assertEqual('DEPENDENCY', gra.relation_edge(self.who,
                                                         self.saw).relation)
        self.assertEqual(2.0, gra.edge_weight((self.who, self.saw)))

    def test_dot(self):
        dot = self.graph.to_dot().to_string()
        self.assertIn('nsubj', dot)
        self.assertIn('relcl', dot)
        self.assertIn('digraph', dot)

    def test_document_oddities(self):
        self.john.add_relation('TEST_GRAPH_DUP', self.saw)
        self.doc.remove_annotation(self.smiled)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            gra = self.doc.relation_graph()
        self.assertEqual(2, len(caught))
        self.assertIn('ignoring', str(caught[0].message))
        self.assertIn('dangling', str(caught[1].message))
        # first relation wins
        self.assertEqual('nsubj', gra.relation_edge(self.john,
                                                    self.saw).value)
        self.assertEqual(2, len(gra.relation_edges()))
