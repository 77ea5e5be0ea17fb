# Author: Eric Kow
# License: BSD3
# pylint: disable=too-many-public-methods, invalid-name
# pylint: disable=missing-docstring, too-few-public-methods

"""
Tests for strata.processing
"""

import os
import pickle
import shutil
import tempfile
import threading
import unittest
from collections import Counter

import strata.corpus
from strata.annotation import Document
from strata.corpus import (CorpusType, DistributedCorpus, InMemoryCorpus,
                           from_documents)
from strata.corpus.formats import JSON_OPL
from strata.language import Language
from strata.processing import (Annotator, AnnotatorCache,
                               AnnotatorMismatchError, AnnotatorRegistry,
                               GoldStandardError, NoAnnotatorError,
                               PartitionWriter, Pipeline,
                               ResolutionCycleError, process, process_with)
from strata.types import (AnnotationType, ConfigurationError, CONFIDENCE,
                          TOKEN)

PREREQ = AnnotationType.create('TEST_PREREQ')
TARGET = AnnotationType.create('TEST_TARGET', attributes=[CONFIDENCE])
EXTRA = AnnotationType.create('TEST_EXTRA')
LOOP_A = AnnotationType.create('TEST_LOOP_A')
LOOP_B = AnnotationType.create('TEST_LOOP_B')
UNCONFIGURED = AnnotationType.create('TEST_UNCONFIGURED')


class Boom(Exception):
    "raised by the failing annotator"
    pass


class RecordingAnnotator(Annotator):
    """
    Annotator which covers the document with one annotation per type
    it satisfies, and keeps a log of what it was asked to do
    """
    version = '2.1'

    def __init__(self, satisfies, requires=(), log=None, fail_on=None):
        self._satisfies = frozenset(satisfies)
        self._requires = frozenset(requires)
        self.log = log if log is not None else []
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def satisfies(self):
        return self._satisfies

    def requires(self):
        return self._requires

    def annotate(self, document):
        if self.fail_on is not None and document.id == self.fail_on:
            raise Boom(document.id)
        for req in self._requires:
            assert document.is_completed(req)
        with self._lock:
            self.log.append((document.id,
                             sorted(t.name for t in self._satisfies)))
        for atype in sorted(self._satisfies):
            document.create_annotation(atype, 0, len(document),
                                       {CONFIDENCE: 0.5})


class PrereqAnnotator(RecordingAnnotator):
    "zero argument factory for the PREREQ annotator"
    def __init__(self):
        super(PrereqAnnotator, self).__init__([PREREQ])


class TargetAnnotator(RecordingAnnotator):
    "zero argument factory for the TARGET annotator"
    def __init__(self):
        super(TargetAnnotator, self).__init__([TARGET], [PREREQ])


def mk_cache(*entries):
    """
    Fresh cache over a registry with the given (type, annotator)
    entries
    """
    registry = AnnotatorRegistry()
    for atype, annotator in entries:
        registry.register(atype, annotator)
    return AnnotatorCache(registry)


def mk_documents(count, prefix='doc'):
    return [Document('document number %d' % i, doc_id='%s%d' % (prefix, i))
            for i in range(count)]

# ---------------------------------------------------------------------
# registry and cache
# ---------------------------------------------------------------------


class RegistryTest(unittest.TestCase):

    def test_find(self):
        prereq = RecordingAnnotator([PREREQ])
        registry = AnnotatorRegistry()
        registry.register(PREREQ, prereq)
        registry.register(TARGET, TargetAnnotator)
        self.assertIs(prereq, registry.find(PREREQ, Language.ENGLISH))
        self.assertIsInstance(registry.find(TARGET), TargetAnnotator)
        self.assertTrue(registry.has_annotator(TARGET, Language.FRENCH))
        self.assertEqual([PREREQ, TARGET], registry.types())

    def test_missing(self):
        registry = AnnotatorRegistry()
        self.assertRaises(NoAnnotatorError, registry.find, UNCONFIGURED)
        try:
            registry.find(UNCONFIGURED, Language.FRENCH)
        except ConfigurationError as err:
            self.assertIn('TEST_UNCONFIGURED', str(err))
            self.assertIs(Language.FRENCH, err.language)

    def test_names(self):
        registry = AnnotatorRegistry()
        registry.register('test_prereq', PrereqAnnotator, 'fr')
        self.assertTrue(registry.has_annotator(PREREQ, Language.FRENCH))
        self.assertTrue(registry.has_annotator('annotation.test-prereq',
                                               'french'))
        self.assertFalse(registry.has_annotator(PREREQ))
        self.assertIsInstance(registry.find('TEST PREREQ', 'fr'),
                              PrereqAnnotator)
        registry.unregister('test_prereq', Language.FRENCH)
        self.assertEqual([], registry.types())

    def test_language_specific(self):
        default = RecordingAnnotator([PREREQ])
        french = RecordingAnnotator([PREREQ])
        registry = AnnotatorRegistry()
        registry.register(PREREQ, default)
        registry.register(PREREQ, french, language='fr')
        self.assertIs(french, registry.find(PREREQ, Language.FRENCH))
        self.assertIs(default, registry.find(PREREQ, Language.GERMAN))
        self.assertIs(default, registry.find(PREREQ))
        registry.unregister(PREREQ, Language.FRENCH)
        self.assertIs(default, registry.find(PREREQ, Language.FRENCH))

    def test_gold_standard(self):
        registry = AnnotatorRegistry()
        gold = TOKEN.gold_standard_version()
        self.assertRaises(GoldStandardError, registry.register, gold,
                          PrereqAnnotator)
        self.assertRaises(GoldStandardError, registry.find, gold)

    def test_pickle(self):
        registry = AnnotatorRegistry()
        registry.register(PREREQ, PrereqAnnotator)
        registry.register(TARGET, TargetAnnotator, Language.FRENCH)
        copied = pickle.loads(pickle.dumps(registry))
        self.assertIsInstance(copied.find(PREREQ), PrereqAnnotator)
        self.assertIsInstance(copied.find(TARGET, Language.FRENCH),
                              TargetAnnotator)
        self.assertRaises(NoAnnotatorError, copied.find, TARGET,
                          Language.ENGLISH)


class CountingFactory:
    "builds prereq annotators, counting how many"
    def __init__(self):
        self.count = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.count += 1
        return RecordingAnnotator([PREREQ])


class CacheTest(unittest.TestCase):

    def test_get(self):
        factory = CountingFactory()
        cache = mk_cache((PREREQ, factory))
        first = cache.get(PREREQ, Language.ENGLISH)
        self.assertIs(first, cache.get(PREREQ, Language.ENGLISH))
        self.assertEqual(1, factory.count)
        self.assertEqual(1, len(cache))
        # one per language
        self.assertIsNot(first, cache.get(PREREQ, Language.FRENCH))
        self.assertEqual(2, factory.count)
        self.assertEqual(2, len(cache))

    def test_invalidate(self):
        factory = CountingFactory()
        cache = mk_cache((PREREQ, factory))
        first = cache.get(PREREQ)
        cache.invalidate(PREREQ)
        self.assertIsNot(first, cache.get(PREREQ))
        cache.clear()
        self.assertEqual(0, len(cache))
        cache.get(PREREQ)
        self.assertEqual(3, factory.count)

    def test_mismatch(self):
        cache = mk_cache((TARGET, PrereqAnnotator))
        self.assertRaises(AnnotatorMismatchError, cache.get, TARGET)
        self.assertEqual(0, len(cache))
        self.assertRaises(AnnotatorMismatchError, cache.set_annotator,
                          TARGET, None, PrereqAnnotator())

    def test_missing(self):
        cache = mk_cache()
        self.assertRaises(NoAnnotatorError, cache.get, UNCONFIGURED)

    def test_set_annotator(self):
        cache = mk_cache((PREREQ, PrereqAnnotator))
        mine = RecordingAnnotator([PREREQ])
        cache.set_annotator(PREREQ, Language.ENGLISH, mine)
        self.assertIs(mine, cache.get(PREREQ, Language.ENGLISH))

    def test_concurrent_get(self):
        factory = CountingFactory()
        cache = mk_cache((PREREQ, factory))
        found = []
        barrier = threading.Barrier(8)

        def work():
            barrier.wait()
            found.append(cache.get(PREREQ, Language.ENGLISH))

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(1, factory.count)
        self.assertEqual(1, len(set(id(x) for x in found)))

# ---------------------------------------------------------------------
# resolution
# ---------------------------------------------------------------------


class ProcessTest(unittest.TestCase):

    def setUp(self):
        self.log = []
        self.prereq = RecordingAnnotator([PREREQ], log=self.log)
        self.target = RecordingAnnotator([TARGET], [PREREQ], log=self.log)
        self.cache = mk_cache((PREREQ, self.prereq), (TARGET, self.target))
        self.doc = Document('hello world', doc_id='p1')

    def test_idempotent(self):
        process(self.doc, PREREQ, cache=self.cache)
        process(self.doc, PREREQ, cache=self.cache)
        self.assertEqual([('p1', ['TEST_PREREQ'])], self.log)
        self.assertTrue(self.doc.is_completed(PREREQ))
        self.assertEqual(1, len(self.doc.annotations(PREREQ)))

    def test_prerequisites_first(self):
        process(self.doc, TARGET, cache=self.cache)
        self.assertEqual([('p1', ['TEST_PREREQ']), ('p1', ['TEST_TARGET'])],
                         self.log)
        self.assertTrue(self.doc.is_completed(PREREQ))
        self.assertTrue(self.doc.is_completed(TARGET))
        # nothing more to do
        process(self.doc, PREREQ, TARGET, cache=self.cache)
        self.assertEqual(2, len(self.log))

    def test_provider(self):
        process(self.doc, TARGET, cache=self.cache)
        self.assertTrue(self.doc.provider(TARGET)
                        .endswith('.RecordingAnnotator::2.1'))
        self.assertEqual(self.target.identity(), self.doc.provider(TARGET))

    def test_multiple_satisfied(self):
        both = RecordingAnnotator([TARGET, EXTRA], log=self.log)
        cache = mk_cache((TARGET, both), (EXTRA, both))
        process(self.doc, TARGET, EXTRA, cache=cache)
        self.assertEqual([('p1', ['TEST_EXTRA', 'TEST_TARGET'])], self.log)
        self.assertTrue(self.doc.is_completed(EXTRA))

    def test_by_name(self):
        process(self.doc, 'test_target', cache=self.cache)
        self.assertTrue(self.doc.is_completed(TARGET))
        self.assertTrue(self.doc.is_completed('Test-Prereq'))
        self.assertEqual(self.target.identity(),
                         self.doc.provider('annotation.TEST_TARGET'))
        self.assertEqual(2, len(self.log))

    def test_cache_by_name(self):
        self.assertIs(self.prereq, self.cache.get('test_prereq', 'en'))
        self.assertIs(self.prereq, self.cache.get(PREREQ, Language.ENGLISH))
        self.cache.invalidate('test_prereq', 'en')
        self.assertEqual(0, len(self.cache))

    def test_none_skipped(self):
        process(self.doc, None, PREREQ, None, cache=self.cache)
        self.assertTrue(self.doc.is_completed(PREREQ))

    def test_already_completed(self):
        self.doc.set_completed(TARGET, True, 'by hand')
        process(self.doc, TARGET, cache=self.cache)
        self.assertEqual([], self.log)
        self.assertEqual('by hand', self.doc.provider(TARGET))

    def test_unconfigured(self):
        self.assertRaises(NoAnnotatorError, process, self.doc, UNCONFIGURED,
                          cache=self.cache)

    def test_cycle(self):
        cache = mk_cache((LOOP_A, RecordingAnnotator([LOOP_A], [LOOP_B])),
                         (LOOP_B, RecordingAnnotator([LOOP_B], [LOOP_A])))
        try:
            process(self.doc, LOOP_A, cache=cache)
            self.fail('expected a cycle')
        except ResolutionCycleError as err:
            self.assertEqual([LOOP_A, LOOP_B, LOOP_A], err.cycle)
        self.assertFalse(self.doc.is_completed(LOOP_A))

    def test_process_with(self):
        extra = RecordingAnnotator([EXTRA], [PREREQ], log=self.log)
        process_with(self.doc, extra, cache=self.cache)
        self.assertEqual([('p1', ['TEST_PREREQ']), ('p1', ['TEST_EXTRA'])],
                         self.log)
        process_with(self.doc, extra, cache=self.cache)
        self.assertEqual(2, len(self.log))

# ---------------------------------------------------------------------
# pipeline
# ---------------------------------------------------------------------


class PipelineTest(unittest.TestCase):

    def setUp(self):
        self.log = []
        self.prereq = RecordingAnnotator([PREREQ], log=self.log)
        self.target = RecordingAnnotator([TARGET], [PREREQ], log=self.log)
        self.cache = mk_cache((PREREQ, self.prereq), (TARGET, self.target))
        self.tmpdir = tempfile.mkdtemp(prefix='strata-test-')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, True)

    def test_each_document_once(self):
        for workers in [1, 3, 8]:
            del self.log[:]
            docs = mk_documents(40)
            pipeline = Pipeline([TARGET], num_workers=workers,
                                queue_size=5, cache=self.cache)
            result = pipeline.process(InMemoryCorpus(docs))
            self.assertIs(CorpusType.IN_MEMORY, result.corpus_type)
            self.assertEqual([d.id for d in docs], [d.id for d in result])
            self.assertTrue(all(d.is_completed(TARGET) for d in result))
            counts = Counter(doc_id for doc_id, _ in self.log)
            self.assertEqual(set(d.id for d in docs), set(counts))
            self.assertEqual(set([2]), set(counts.values()))
            self.assertEqual(40, pipeline.documents_processed)

    def test_annotate_by_name(self):
        corpus = InMemoryCorpus(mk_documents(6))
        result = corpus.annotate('test_target', num_workers=2,
                                 cache=self.cache)
        self.assertEqual(6, result.size())
        self.assertTrue(all(d.is_completed(PREREQ) and
                            d.is_completed(TARGET) for d in result))
        pipeline = Pipeline(['annotation.test_prereq'], cache=self.cache)
        self.assertEqual((PREREQ,), pipeline.types)

    def test_stream(self):
        docs = mk_documents(10)
        result = Pipeline([PREREQ], num_workers=2, cache=self.cache)\
            .process(from_documents(iter(docs), CorpusType.STREAM))
        self.assertIs(CorpusType.IN_MEMORY, result.corpus_type)
        self.assertEqual(10, result.size())

    def test_on_complete(self):
        seen = []
        lock = threading.Lock()

        def on_complete(doc):
            with lock:
                seen.append(doc.id)

        corpus = InMemoryCorpus(mk_documents(12))
        result = Pipeline([PREREQ], num_workers=4, cache=self.cache,
                          on_complete=on_complete,
                          return_corpus=False).process(corpus)
        self.assertIs(corpus, result)
        self.assertEqual(sorted(d.id for d in corpus), sorted(seen))
        self.assertTrue(all(d.is_completed(PREREQ) for d in corpus))

    def test_failure(self):
        failing = RecordingAnnotator([PREREQ], fail_on='doc7')
        cache = mk_cache((PREREQ, failing))
        pipeline = Pipeline([PREREQ], num_workers=3, queue_size=2,
                            cache=cache)
        corpus = InMemoryCorpus(mk_documents(30))
        self.assertRaises(Boom, pipeline.process, corpus)
        self.assertLess(pipeline.documents_processed, 30)

    def test_producer_failure(self):
        def documents():
            for doc in mk_documents(5):
                yield doc
            raise Boom('producer')

        pipeline = Pipeline([PREREQ], num_workers=2, cache=self.cache)
        self.assertRaises(Boom, pipeline.process,
                          from_documents(documents(), CorpusType.STREAM))

    def test_metrics(self):
        pipeline = Pipeline([PREREQ], num_workers=2, cache=self.cache)
        self.assertEqual(0.0, pipeline.documents_per_second())
        pipeline.process(InMemoryCorpus(mk_documents(20, 'a')))
        self.assertEqual(20, pipeline.documents_processed)
        self.assertGreater(pipeline.elapsed_time, 0)
        self.assertGreater(pipeline.documents_per_second(), 0)
        self.assertTrue(pipeline.total_time_processing().endswith(' s'))
        # reset between runs
        pipeline.process(InMemoryCorpus(mk_documents(5, 'b')))
        self.assertEqual(5, pipeline.documents_processed)
        pipeline.process_document(Document('one more'))
        self.assertEqual(6, pipeline.documents_processed)

    def test_process_document(self):
        pipeline = Pipeline([TARGET], cache=self.cache)
        doc = pipeline.process_document(Document('x', doc_id='single'))
        self.assertTrue(doc.is_completed(TARGET))
        self.assertEqual(1, pipeline.documents_processed)

    def test_bad_settings(self):
        self.assertRaises(ValueError, Pipeline, [TARGET], num_workers=-1)
        self.assertRaises(ValueError, Pipeline, [TARGET], num_workers=0)
        self.assertRaises(ValueError, Pipeline, [TARGET], queue_size=0)
        self.assertRaises(ValueError, Pipeline, [TARGET], partitions=0)

    def test_off_heap(self):
        docs = mk_documents(25)
        path = os.path.join(self.tmpdir, 'input.json')
        JSON_OPL.write(docs, path)
        corpus = strata.corpus.read(path, JSON_OPL, CorpusType.OFF_HEAP)
        pipeline = Pipeline([TARGET], num_workers=3, partitions=2,
                            cache=self.cache)
        result = pipeline.process(corpus)
        self.assertIs(CorpusType.OFF_HEAP, result.corpus_type)
        self.assertEqual(['part-00000.json', 'part-00001.json'],
                         sorted(os.listdir(result.path)))
        reread = sorted(result, key=lambda d: d.id)
        self.assertEqual(sorted(d.id for d in docs), [d.id for d in reread])
        for doc in reread:
            self.assertTrue(doc.is_completed(PREREQ))
            self.assertTrue(doc.is_completed(TARGET))
            self.assertEqual(self.target.identity(), doc.provider(TARGET))
            anno = doc.first(TARGET)
            self.assertEqual(0.5, anno.get(CONFIDENCE))
            self.assertEqual((0, len(doc)), (anno.start, anno.end))
        # the input is left alone
        self.assertFalse(any(d.is_completed(TARGET) for d in corpus))

    def test_off_heap_passthrough(self):
        corpus = from_documents(mk_documents(4), CorpusType.OFF_HEAP)
        result = Pipeline([PREREQ], cache=self.cache,
                          return_corpus=False).process(corpus)
        self.assertIs(corpus, result)
        self.assertEqual(4, len(self.log))

    def test_distributed(self):
        registry = AnnotatorRegistry()
        registry.register(PREREQ, PrereqAnnotator)
        registry.register(TARGET, TargetAnnotator)
        corpus = DistributedCorpus(mk_documents(9), n_jobs=2,
                                   backend='threading', partitions=3)
        pipeline = Pipeline([TARGET], cache=AnnotatorCache(registry))
        result = pipeline.process(corpus)
        self.assertIs(CorpusType.DISTRIBUTED, result.corpus_type)
        self.assertEqual(9, pipeline.documents_processed)
        self.assertEqual(9, result.size())
        self.assertTrue(all(d.is_completed(TARGET) for d in result))
        self.assertFalse(any(d.is_completed(TARGET) for d in corpus))


class PartitionWriterTest(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix='strata-test-')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, True)

    def test_round_robin(self):
        docs = mk_documents(6)
        with PartitionWriter(self.tmpdir, 4) as writer:
            self.assertEqual(4, len(writer))
            for worker, doc in enumerate(docs):
                writer.write(doc, worker)
        sizes = []
        for path in writer.paths:
            with open(path) as fin:
                sizes.append(len(fin.readlines()))
        self.assertEqual([2, 2, 1, 1], sizes)
        reread = strata.corpus.read(self.tmpdir)
        self.assertEqual(6, reread.size())

    def test_bad_partitions(self):
        self.assertRaises(ValueError, PartitionWriter, self.tmpdir, 0)
