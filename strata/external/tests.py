# Author: Eric Kow
# License: BSD3
# pylint: disable=missing-docstring, invalid-name

"""
Tests for the NLTK based annotators
"""

import unittest

from strata.annotation import Document
from strata.external.annotators import (LexiconAnnotator,
                                        SentenceAnnotator, TokenAnnotator,
                                        register_defaults)
from strata.processing import AnnotatorCache, AnnotatorRegistry, process
from strata.types import (AnnotationType, INDEX, LEXICON_MATCH,
                          MATCHED_STRING, SENTENCE, TAG, TOKEN)

PLACE = AnnotationType.create('TEST_PLACE', LEXICON_MATCH)


def mk_cache(*annotators):
    registry = register_defaults(AnnotatorRegistry())
    for annotator in annotators:
        for atype in annotator.satisfies():
            registry.register(atype, annotator)
    return AnnotatorCache(registry)


class TokenTest(unittest.TestCase):

    def test_tokens(self):
        doc = Document('Hello, world!')
        process(doc, TOKEN, cache=mk_cache())
        tokens = doc.tokens()
        self.assertEqual(['Hello', ',', 'world', '!'],
                         [t.text for t in tokens])
        self.assertEqual([0, 1, 2, 3], [t.get(INDEX) for t in tokens])
        self.assertEqual((7, 12), (tokens[2].start, tokens[2].end))
        self.assertTrue(doc.provider(TOKEN).endswith('TokenAnnotator::1.0'))

    def test_empty(self):
        doc = Document('')
        process(doc, SENTENCE, cache=mk_cache())
        self.assertEqual([], doc.tokens())
        self.assertTrue(doc.is_completed(TOKEN))
        self.assertTrue(doc.is_completed(SENTENCE))


class SentenceTest(unittest.TestCase):

    def test_sentences(self):
        doc = Document('It rained all day. We stayed in.')
        process(doc, SENTENCE, cache=mk_cache())
        self.assertTrue(doc.is_completed(TOKEN))
        sentences = doc.sentences()
        self.assertEqual(['It rained all day.', 'We stayed in.'],
                         [s.text for s in sentences])
        self.assertEqual(['We', 'stayed', 'in', '.'],
                         [t.text for t in sentences[1].tokens()])

    def test_requires(self):
        self.assertEqual(frozenset([TOKEN]), SentenceAnnotator().requires())
        self.assertEqual(frozenset(), TokenAnnotator().requires())


class LexiconTest(unittest.TestCase):

    def setUp(self):
        self.lexicon = LexiconAnnotator(PLACE, {'New York': 'city',
                                                'York': 'town',
                                                'old town': 'district'})

    def test_longest_match(self):
        doc = Document('I love New York. York is old. See the Old Town.')
        process(doc, PLACE, cache=mk_cache(self.lexicon))
        matches = doc.annotations(PLACE)
        self.assertEqual(['New York', 'York', 'Old Town'],
                         [m.text for m in matches])
        self.assertEqual(['city', 'town', 'district'],
                         [m.get(TAG) for m in matches])
        self.assertEqual('old town', matches[2].get(MATCHED_STRING))
        # matches are lexicon matches too
        self.assertEqual(matches, doc.annotations(LEXICON_MATCH))

    def test_case_sensitive(self):
        lexicon = LexiconAnnotator(PLACE, {'New York': 'city'},
                                   case_sensitive=True)
        doc = Document('new york or New York')
        process(doc, PLACE, cache=mk_cache(lexicon))
        self.assertEqual([(12, 20)],
                         [(m.start, m.end) for m in doc.annotations(PLACE)])

    def test_requires(self):
        self.assertEqual(frozenset([PLACE]), self.lexicon.satisfies())
        self.assertEqual(frozenset([TOKEN, SENTENCE]),
                         self.lexicon.requires())
