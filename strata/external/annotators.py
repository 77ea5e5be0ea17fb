# -*- coding: utf-8 -*-
#
# Author: Eric Kow
# License: BSD3

"""
Basic annotators built on NLTK_, enough to get tokens and sentences
(and dictionary lookups) onto documents without any further setup.

Use `register_defaults` to make them the annotators for TOKEN and
SENTENCE.

.. _NLTK: http://www.nltk.org
"""

# pylint: disable=too-few-public-methods

from nltk.tokenize import PunktSentenceTokenizer, WordPunctTokenizer

from ..processing.annotator import Annotator
from ..types import (INDEX, MATCHED_STRING, SENTENCE, TAG, TOKEN,
                     as_type)


class TokenAnnotator(Annotator):
    """
    Word and punctuation tokens (NLTK's `WordPunctTokenizer`).
    Each token is numbered (INDEX) in document order
    """
    version = '1.0'

    def __init__(self):
        self._tokenizer = WordPunctTokenizer()

    def satisfies(self):
        return frozenset([TOKEN])

    def annotate(self, document):
        spans = self._tokenizer.span_tokenize(document.text)
        for i, (start, end) in enumerate(spans):
            document.create_annotation(TOKEN, start, end, {INDEX: i})


class SentenceAnnotator(Annotator):
    """
    Sentences, from NLTK's (untrained) Punkt sentence tokenizer,
    numbered in document order
    """
    version = '1.0'

    def __init__(self):
        self._tokenizer = PunktSentenceTokenizer()

    def satisfies(self):
        return frozenset([SENTENCE])

    def requires(self):
        return frozenset([TOKEN])

    def annotate(self, document):
        spans = self._tokenizer.span_tokenize(document.text)
        for i, (start, end) in enumerate(spans):
            document.create_annotation(SENTENCE, start, end, {INDEX: i})


class LexiconAnnotator(Annotator):
    """
    Marks sequences of tokens found in a lexicon (a dictionary from
    phrases to tags), preferring the longest match at each position.
    Matches do not cross sentence boundaries.

    Matches are annotations of the given type, with the tag (TAG)
    and the lexicon entry that matched (MATCHED_STRING).

    :param atype: type of the annotations to make
    :param lexicon: phrase to tag dictionary
    :param case_sensitive: if False, phrases match whatever their case
    """
    version = '1.0'

    def __init__(self, atype, lexicon, case_sensitive=False):
        self.type = as_type(atype)
        self.case_sensitive = case_sensitive
        tokenizer = WordPunctTokenizer()
        self._entries = {}
        for phrase, tag in lexicon.items():
            key = tuple(self._norm(x) for x in tokenizer.tokenize(phrase))
            if key:
                self._entries[key] = (phrase, tag)
        self._longest = max([len(k) for k in self._entries] or [0])

    def _norm(self, word):
        return word if self.case_sensitive else word.lower()

    def satisfies(self):
        return frozenset([self.type])

    def requires(self):
        return frozenset([TOKEN, SENTENCE])

    def _annotate_sentence(self, document, tokens):
        words = [self._norm(t.text) for t in tokens]
        i = 0
        while i < len(tokens):
            for size in range(min(self._longest, len(tokens) - i), 0, -1):
                entry = self._entries.get(tuple(words[i:i + size]))
                if entry is not None:
                    phrase, tag = entry
                    document.create_annotation(
                        self.type, tokens[i].start, tokens[i + size - 1].end,
                        {TAG: tag, MATCHED_STRING: phrase})
                    i += size
                    break
            else:
                i += 1

    def annotate(self, document):
        for sentence in document.sentences():
            self._annotate_sentence(document, sentence.contained(TOKEN))


def register_defaults(registry):
    """
    Use the NLTK token and sentence annotators for TOKEN and SENTENCE
    """
    registry.register(TOKEN, TokenAnnotator)
    registry.register(SENTENCE, SentenceAnnotator)
    return registry
