# Author: Eric Kow
# License: BSD3
# pylint: disable=too-many-public-methods, invalid-name
# pylint: disable=missing-docstring

"""
Tests for strata.corpus
"""

import datetime
import os
import random
import shutil
import tempfile
import unittest
from collections import Counter

from joblib import cpu_count

import strata.corpus
from strata.annotation import Document
from strata.corpus import (CorpusType, DistributedCorpus, FileCorpus,
                           InMemoryCorpus, StreamCorpus, from_documents,
                           from_texts)
from strata.corpus.formats import (FormatError, JSON_OPL, TEXT, TEXT_OPL,
                                   document_from_json, document_to_json,
                                   get_format)
from strata.external.annotators import register_defaults
from strata.language import Language
from strata.processing import AnnotatorCache, AnnotatorRegistry
from strata.types import (AnnotationType, AttributeType, CATEGORY,
                          CONFIDENCE, DEPENDENCY, INDEX, SENTENCE, TAG,
                          TOKEN)

PUBLISHED = AttributeType.create('TEST_PUBLISHED', datetime.date)
PLACE = AnnotationType.create('TEST_CORPUS_PLACE')


def mk_rich_document():
    """
    A document with a bit of everything
    """
    doc = Document('Dogs bark. Cats meow.', doc_id='rich',
                   language=Language.FRENCH)
    doc.put(CATEGORY, 'animals')
    doc.put(PUBLISHED, datetime.date(2015, 3, 1))
    dogs = doc.create_annotation(TOKEN, 0, 4, {INDEX: 0})
    bark = doc.create_annotation(TOKEN, 5, 9, {INDEX: 1})
    doc.create_annotation(SENTENCE, 0, 10, {INDEX: 0, CONFIDENCE: 0.75})
    dogs.add_relation(DEPENDENCY, bark, 'nsubj')
    bark.add_relation('TEST_SIBLING', dogs, reciprocal=True)
    doc.set_completed(TOKEN, True, 'my.Tokenizer::1.0')
    doc.set_completed(SENTENCE, True, None)
    return doc


def mk_documents(count):
    return [Document('text %d' % i, doc_id='d%d' % i) for i in range(count)]


class TmpDirTest(unittest.TestCase):
    "tests which need a scratch directory"

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix='strata-test-')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, True)

# ---------------------------------------------------------------------
# formats
# ---------------------------------------------------------------------


class JsonTest(TmpDirTest):

    def assertSameDocument(self, doc1, doc2):
        self.assertEqual(doc1.id, doc2.id)
        self.assertEqual(doc1.text, doc2.text)
        self.assertIs(doc1.language, doc2.language)
        self.assertEqual(dict(doc1.attributes()), dict(doc2.attributes()))
        self.assertEqual(dict(doc1.completed()), dict(doc2.completed()))
        annos1 = doc1.annotations()
        annos2 = doc2.annotations()
        self.assertEqual([(a.id, a.type, a.start, a.end) for a in annos1],
                         [(a.id, a.type, a.start, a.end) for a in annos2])
        for anno1, anno2 in zip(annos1, annos2):
            self.assertEqual(dict(anno1.attributes()),
                             dict(anno2.attributes()))
            self.assertEqual(anno1.relations(), anno2.relations())

    def test_round_trip(self):
        doc = mk_rich_document()
        reread = JSON_OPL.loads(JSON_OPL.dumps(doc))
        self.assertSameDocument(doc, reread)
        self.assertEqual(datetime.date(2015, 3, 1), reread.get(PUBLISHED))
        self.assertEqual('my.Tokenizer::1.0', reread.provider(TOKEN))
        self.assertTrue(reread.is_completed(SENTENCE))
        dogs = reread.first(TOKEN)
        self.assertEqual(['bark'], [x.text for x in dogs.targets(DEPENDENCY)])
        self.assertEqual('nsubj', dogs.relations(DEPENDENCY)[0].value)
        self.assertEqual(['bark'],
                         [x.text for x in dogs.targets('TEST_SIBLING')])

    def test_fresh_ids(self):
        reread = JSON_OPL.loads(JSON_OPL.dumps(mk_rich_document()))
        old_ids = set(a.id for a in reread.annotations())
        anno = reread.create_annotation(TOKEN, 11, 15)
        self.assertNotIn(anno.id, old_ids)

    def test_json_shape(self):
        obj = document_to_json(mk_rich_document())
        self.assertEqual('fr', obj['language'])
        self.assertEqual('2015-03-01', obj['attributes']['TEST_PUBLISHED'])
        self.assertEqual('my.Tokenizer::1.0',
                         obj['completed']['annotation.TOKEN'])
        self.assertEqual(['TOKEN', 'SENTENCE', 'TOKEN'],
                         [x['type'] for x in obj['annotations']])
        self.assertEqual('rich', document_from_json(obj).id)

    def test_malformed(self):
        self.assertRaises(FormatError, JSON_OPL.loads, '{"id": "x"}')
        self.assertRaises(FormatError, JSON_OPL.loads, '[1, 2]')
        self.assertRaises(FormatError, JSON_OPL.loads, '{oops')
        bad_span = {'text': 'abc',
                    'annotations': [{'id': 0, 'type': 'TOKEN',
                                     'start': 0, 'end': 10}]}
        self.assertRaises(FormatError, document_from_json, bad_span)

    def test_line_numbers(self):
        path = os.path.join(self.tmpdir, 'broken.json')
        with open(path, 'w', encoding='utf-8') as fout:
            print(JSON_OPL.dumps(Document('ok', doc_id='a')), file=fout)
            print('', file=fout)
            print('{not json', file=fout)
        docs = JSON_OPL.read(path)
        self.assertEqual('a', next(docs).id)
        try:
            next(docs)
            self.fail('expected a format error')
        except FormatError as err:
            self.assertEqual(path, err.source)
            self.assertEqual(3, err.line)
            self.assertIn('broken.json:3', str(err))

    def test_directory(self):
        JSON_OPL.write(mk_documents(2), os.path.join(self.tmpdir, 'b.json'))
        JSON_OPL.write(mk_documents(3), os.path.join(self.tmpdir, 'a.json'))
        with open(os.path.join(self.tmpdir, '.hidden'), 'w') as fout:
            print('garbage', file=fout)
        ids = [d.id for d in JSON_OPL.read(self.tmpdir)]
        self.assertEqual(['d0', 'd1', 'd2', 'd0', 'd1'], ids)


class TextTest(TmpDirTest):

    def test_one_per_line(self):
        path = os.path.join(self.tmpdir, 'texts.txt')
        with open(path, 'w', encoding='utf-8') as fout:
            print('first document', file=fout)
            print('   ', file=fout)
            print('second document', file=fout)
        docs = list(TEXT_OPL.read(path))
        self.assertEqual(['first document', 'second document'],
                         [d.text for d in docs])
        self.assertNotEqual(docs[0].id, docs[1].id)

        out = os.path.join(self.tmpdir, 'out.txt')
        TEXT_OPL.write([Document('multi\nline')], out)
        with open(out, encoding='utf-8') as fin:
            self.assertEqual('multi line\n', fin.read())

    def test_one_per_file(self):
        out = os.path.join(self.tmpdir, 'docs')
        TEXT.write([Document('alpha', doc_id='one'),
                    Document('beta\ngamma', doc_id='two')], out)
        self.assertEqual(['one.txt', 'two.txt'], sorted(os.listdir(out)))
        docs = list(TEXT.read(out))
        self.assertEqual(['one', 'two'], [d.id for d in docs])
        self.assertEqual('beta\ngamma', docs[1].text)

    def test_get_format(self):
        self.assertIs(JSON_OPL, get_format('json_opl'))
        self.assertIs(TEXT_OPL, get_format('Text-OPL'))
        self.assertIs(TEXT, get_format(TEXT))
        self.assertRaises(ValueError, get_format, 'xml')

# ---------------------------------------------------------------------
# corpora
# ---------------------------------------------------------------------


def is_even(doc):
    return int(doc.id[1:]) % 2 == 0


def shout(doc):
    return Document(doc.text.upper(), doc_id=doc.id)


class CorpusTest(TmpDirTest):

    def test_in_memory(self):
        corpus = InMemoryCorpus(mk_documents(5))
        self.assertEqual(5, corpus.size())
        self.assertEqual(5, len(corpus))
        self.assertEqual('d3', corpus[3].id)
        self.assertFalse(corpus.is_empty())
        self.assertTrue(InMemoryCorpus().is_empty())
        self.assertIs(corpus, corpus.cache())

    def test_map_filter(self):
        corpus = InMemoryCorpus(mk_documents(5))
        self.assertEqual(['d0', 'd2', 'd4'],
                         [d.id for d in corpus.filter(is_even)])
        self.assertEqual(['TEXT 0', 'TEXT 1'],
                         [d.text for d in corpus.map(shout)][:2])

    def test_stream(self):
        corpus = StreamCorpus(iter(mk_documents(3)))
        evens = corpus.filter(is_even)
        self.assertIs(CorpusType.STREAM, evens.corpus_type)
        self.assertEqual(['d0', 'd2'], [d.id for d in evens])
        self.assertRaises(RuntimeError, iter, corpus)
        self.assertRaises(RuntimeError, iter, evens)

    def test_stream_cache(self):
        cached = StreamCorpus(iter(mk_documents(3))).cache()
        self.assertEqual(3, cached.size())
        self.assertEqual(3, cached.size())

    def test_off_heap(self):
        corpus = from_documents(mk_documents(4), CorpusType.OFF_HEAP)
        self.assertIsInstance(corpus, FileCorpus)
        self.assertEqual(4, corpus.size())
        # read afresh each time
        first = [d for d in corpus]
        second = [d for d in corpus]
        self.assertEqual([d.id for d in first], [d.id for d in second])
        self.assertIsNot(first[0], second[0])

    def test_sample(self):
        corpus = InMemoryCorpus(mk_documents(20))
        sample = corpus.sample(5, rng=random.Random(42))
        self.assertEqual(5, sample.size())
        self.assertEqual(5, len(set(d.id for d in sample)))
        self.assertEqual(3, InMemoryCorpus(mk_documents(3)).sample(5).size())
        again = corpus.sample(5, rng=random.Random(42))
        self.assertEqual([d.id for d in sample], [d.id for d in again])

    def test_group_by(self):
        groups = InMemoryCorpus(mk_documents(5)).group_by(is_even)
        self.assertEqual(['d0', 'd2', 'd4'], [d.id for d in groups[True]])
        self.assertEqual(['d1', 'd3'], [d.id for d in groups[False]])

    def test_annotation_counts(self):
        doc1 = mk_rich_document()
        doc2 = Document('nothing here', doc_id='empty')
        corpus = InMemoryCorpus([doc1, doc2])
        table = corpus.annotation_counts()
        self.assertEqual(['rich', 'empty'], list(table.index))
        self.assertEqual(2, table.loc['rich', 'TOKEN'])
        self.assertEqual(1, table.loc['rich', 'SENTENCE'])
        self.assertEqual(0, table.loc['empty', 'TOKEN'])
        chosen = corpus.annotation_counts([SENTENCE, 'TOKEN'])
        self.assertEqual(['SENTENCE', 'TOKEN'], list(chosen.columns))
        self.assertEqual([1, 0], list(chosen['SENTENCE']))

    def test_write_read(self):
        path = os.path.join(self.tmpdir, 'corpus.json')
        InMemoryCorpus([mk_rich_document()]).write('json_opl', path)
        for ctype in CorpusType:
            corpus = strata.corpus.read(path, corpus_type=ctype)
            self.assertIs(ctype, corpus.corpus_type)
            self.assertEqual(['rich'], [d.id for d in corpus])
        self.assertRaises(IOError, strata.corpus.read,
                          os.path.join(self.tmpdir, 'nope'))
        self.assertIs(CorpusType.IN_MEMORY,
                      strata.corpus.read(path, corpus_type='in_memory')
                      .corpus_type)

    def test_from_texts(self):
        corpus = from_texts(['un', 'deux'], Language.FRENCH)
        self.assertIs(CorpusType.IN_MEMORY, corpus.corpus_type)
        self.assertEqual(['un', 'deux'], [d.text for d in corpus])
        self.assertTrue(all(d.language is Language.FRENCH for d in corpus))
        stream = from_texts(iter(['a', 'b', 'c']),
                            corpus_type=CorpusType.STREAM)
        self.assertEqual(3, stream.size())


class DistributedCorpusTest(unittest.TestCase):

    def setUp(self):
        self.corpus = DistributedCorpus(mk_documents(7), n_jobs=2,
                                        backend='threading', partitions=3)

    def test_chunks(self):
        chunks = self.corpus._chunks()
        self.assertEqual([3, 3, 1], [len(x) for x in chunks])

    def test_map_filter(self):
        evens = self.corpus.filter(is_even)
        self.assertIs(CorpusType.DISTRIBUTED, evens.corpus_type)
        self.assertEqual(['d0', 'd2', 'd4', 'd6'], [d.id for d in evens])
        loud = self.corpus.map(shout)
        self.assertEqual('TEXT 6', list(loud)[-1].text)
        self.assertEqual(7, loud.size())

    def test_documents_are_copies(self):
        first = next(iter(self.corpus))
        first.put(CATEGORY, 'changed')
        self.assertIsNone(next(iter(self.corpus)).get(CATEGORY))

    def test_empty(self):
        corpus = DistributedCorpus(n_jobs=1, backend='threading')
        self.assertTrue(corpus.is_empty())
        self.assertEqual(0, corpus.filter(is_even).size())

    def test_no_job_count(self):
        corpus = DistributedCorpus(mk_documents(2), n_jobs=None,
                                   backend='threading')
        self.assertEqual(cpu_count(), corpus.partitions)
        self.assertEqual(['d0', 'd1'], [d.id for d in corpus.map(shout)])

    def test_repartition(self):
        corpus = self.corpus.repartition(7)
        self.assertEqual(7, corpus.partitions)
        self.assertEqual([1] * 7, [len(x) for x in corpus._chunks()])
        self.assertEqual(3, self.corpus.partitions)
        self.assertEqual([d.id for d in self.corpus], [d.id for d in corpus])
        self.assertEqual('threading', corpus.backend)
        self.assertRaises(ValueError, self.corpus.repartition, 0)

    def test_union(self):
        more = self.corpus.union(InMemoryCorpus(mk_documents(2)))
        self.assertIs(CorpusType.DISTRIBUTED, more.corpus_type)
        self.assertEqual(9, more.size())
        self.assertEqual(['d0', 'd1'], [d.id for d in more][7:])
        both = self.corpus.union(self.corpus)
        self.assertEqual(14, both.size())
        self.assertEqual(7, self.corpus.size())

    def test_apply_lexicon(self):
        corpus = DistributedCorpus([Document('I love New York.', doc_id='a'),
                                    Document('Paris is nice.', doc_id='b')],
                                   n_jobs=2, backend='threading')
        res = corpus.apply_lexicon({'new york': 'city'}, PLACE,
                                   cache=mk_nltk_cache())
        self.assertIs(CorpusType.DISTRIBUTED, res.corpus_type)
        docs = list(res)
        self.assertEqual(['New York'],
                         [m.text for m in docs[0].annotations(PLACE)])
        self.assertTrue(docs[1].is_completed(PLACE))
        self.assertEqual([], docs[1].annotations(PLACE))


def mk_nltk_cache():
    return AnnotatorCache(register_defaults(AnnotatorRegistry()))


def mk_tokenized(text, doc_id):
    "document with a token for each space separated word"
    doc = Document(text, doc_id=doc_id)
    start = 0
    for word in text.split(' '):
        doc.create_annotation(TOKEN, start, start + len(word))
        start += len(word) + 1
    doc.set_completed(TOKEN, True, None)
    return doc


class CorpusStatsTest(unittest.TestCase):

    def setUp(self):
        self.corpus = InMemoryCorpus([mk_tokenized('the cat the dog', 'a'),
                                      mk_tokenized('The end', 'b')])

    def test_terms(self):
        terms = self.corpus.terms()
        self.assertIsInstance(terms, Counter)
        self.assertEqual(2, terms['the'])
        self.assertEqual(1, terms['The'])
        self.assertEqual(6, sum(terms.values()))
        lower = self.corpus.terms(lowercase=True)
        self.assertEqual(3, lower['the'])
        self.assertEqual(0, lower['The'])
        self.assertEqual(Counter(), self.corpus.terms(SENTENCE))

    def test_document_frequencies(self):
        freqs = self.corpus.document_frequencies()
        self.assertEqual(2, freqs['the'])
        self.assertEqual(1, freqs['cat'])
        self.assertEqual(1, freqs['end'])
        self.assertEqual(1, self.corpus.document_frequencies(
            lowercase=False)['The'])

    def test_blank_terms(self):
        doc = Document('a  b', doc_id='c')
        doc.create_annotation(TOKEN, 0, 1)
        doc.create_annotation(TOKEN, 1, 2)
        doc.create_annotation(TOKEN, 3, 4)
        corpus = InMemoryCorpus([doc])
        self.assertEqual(Counter({'a': 1, 'b': 1}), corpus.terms('token'))
        self.assertEqual(Counter({'a': 1, 'b': 1}),
                         corpus.document_frequencies('token'))


class CorpusUnionTest(unittest.TestCase):

    def test_union(self):
        left = InMemoryCorpus(mk_documents(2))
        right = from_documents(mk_documents(3), CorpusType.OFF_HEAP)
        both = left.union(right)
        self.assertEqual(['d0', 'd1', 'd0', 'd1', 'd2'],
                         [d.id for d in both])
        self.assertEqual(2, left.size())

    def test_stream_union(self):
        left = StreamCorpus(iter(mk_documents(2)))
        both = left.union(InMemoryCorpus(mk_documents(1)))
        self.assertIs(CorpusType.STREAM, both.corpus_type)
        self.assertEqual(3, both.size())
        self.assertRaises(RuntimeError, iter, both)


class LexiconCorpusTest(unittest.TestCase):

    def setUp(self):
        self.lexicon = {'New York': 'city', 'Paris': 'city'}

    def test_apply_lexicon(self):
        corpus = from_texts(['I love New York.', 'Paris is in France.',
                             'Nothing to see.'])
        res = corpus.apply_lexicon(self.lexicon, PLACE,
                                   cache=mk_nltk_cache())
        matches = [[m.text for m in d.annotations(PLACE)] for d in res]
        self.assertEqual([['New York'], ['Paris'], []], matches)
        self.assertTrue(all(d.is_completed(PLACE) for d in res))
        self.assertEqual('city', res[0].annotations(PLACE)[0].get(TAG))

    def test_already_completed(self):
        doc = mk_tokenized('Paris again', 'p')
        doc.set_completed(PLACE, True, 'by.Hand::1')
        res = InMemoryCorpus([doc]).apply_lexicon(self.lexicon, PLACE,
                                                  cache=mk_nltk_cache())
        self.assertEqual([], res[0].annotations(PLACE))
        self.assertEqual('by.Hand::1', res[0].provider(PLACE))

    def test_by_name(self):
        res = from_texts(['See Paris.']).apply_lexicon(
            self.lexicon, 'test_corpus_place', cache=mk_nltk_cache())
        self.assertEqual(['Paris'],
                         [m.text for m in res[0].annotations(PLACE)])
