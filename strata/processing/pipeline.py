# Author: Eric Kow
# License: BSD3

"""
Running annotators over whole corpora.

A `Pipeline` makes sure each document in a corpus has completed a
fixed set of types. Documents are fed by a single producer (the
thread calling `Pipeline.process`, iterating over the corpus) through
a bounded queue to a pool of worker threads. A full queue blocks the
producer and an empty one the workers; there is no other flow
control.

What comes back depends on the corpus:

* in-memory and stream corpora: a new in-memory corpus of the
  processed documents (in their original order)
* off-heap corpora: processed documents are spilled as they are done
  to a fixed number of partition files in a temporary directory, and
  we return a corpus reading them back from there
* distributed corpora: the corpus runs the annotators itself, see
  `strata.corpus.DistributedCorpus`

unless the pipeline is told not to `return_corpus`, in which case the
input corpus is handed back (and only the `on_complete` callback gets
to see the processed documents).

Annotator failures are not caught: the first error raised by any
worker stops the run and is raised again by `Pipeline.process`.
"""

# pylint: disable=too-many-instance-attributes, too-many-arguments

import os
import queue
import sys
import threading
import time

from ..corpus import (CorpusType, FileCorpus, InMemoryCorpus,
                      temporary_directory)
from ..corpus.formats import JSON_OPL
from ..types import as_type
from .annotator import CACHE, process

PROGRESS_EVERY = 5000
"how often (in documents) verbose pipelines report progress"

_DONE = object()
"end of input marker (one per worker)"


class PartitionWriter:
    """
    A fixed number of output files, written to concurrently.

    Each partition has its own lock; a worker picks its partition by
    its index, so with as many partitions as workers there is no
    contention at all.

    Use as a context manager so that files get closed however the run
    ends.
    """
    def __init__(self, directory, partitions, fmt=JSON_OPL,
                 prefix='part-'):
        if partitions < 1:
            raise ValueError('Need at least one partition (not %d)' %
                             partitions)
        self.directory = directory
        self.fmt = fmt
        self.paths = [os.path.join(directory, '%s%05d%s' %
                                   (prefix, i, fmt.extension))
                      for i in range(partitions)]
        self._locks = [threading.Lock() for _ in self.paths]
        self._files = None

    def __len__(self):
        return len(self.paths)

    def open(self):
        "open all partition files for writing"
        files = []
        try:
            for path in self.paths:
                files.append(open(path, 'w', encoding='utf-8'))
        except OSError:
            for fout in files:
                fout.close()
            raise
        self._files = files

    def close(self):
        "close all partition files"
        if self._files is None:
            return
        files, self._files = self._files, None
        for fout in files:
            fout.close()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def write(self, document, worker=0):
        """
        Append a document to the partition assigned to the worker
        """
        line = self.fmt.dumps(document)
        idx = worker % len(self.paths)
        with self._locks[idx]:
            self._files[idx].write(line + '\n')


class Pipeline:
    """
    Annotates corpora with a fixed set of types, see module
    docstring.

    Throughput metrics are measured in wall clock time over each call
    to `process` (plus any `process_document` calls). This includes
    the time the producer spends reading the corpus or blocked on a
    full queue, so `documents_per_second` is end to end throughput
    rather than annotator speed.

    :param types: types to complete on each document (or their names)
    :param num_workers: worker threads (default: number of CPUs)
    :param queue_size: capacity of the queue feeding the workers
    :param on_complete: called (from a worker thread) on each
        document once it is processed
    :param return_corpus: hand back the processed documents as a
        corpus (as opposed to the input corpus)
    :param cache: where to find annotators (default:
        `strata.processing.CACHE`)
    :param partitions: number of files to spill off-heap corpora to
        (default: one per worker)
    :param verbose: report progress on stderr
    """
    def __init__(self, types, num_workers=None, queue_size=10000,
                 on_complete=None, return_corpus=True, cache=None,
                 partitions=None, verbose=False):
        if num_workers is None:
            num_workers = os.cpu_count() or 1
        if num_workers < 1:
            raise ValueError('Number of workers must be > 0')
        if queue_size < 1:
            raise ValueError('Queue size must be > 0')
        if partitions is not None and partitions < 1:
            raise ValueError('Number of partitions must be > 0')
        self.types = tuple(as_type(t) for t in types)
        self.num_workers = num_workers
        self.queue_size = queue_size
        self.on_complete = on_complete
        self.return_corpus = return_corpus
        self.cache = CACHE if cache is None else cache
        self.partitions = partitions or num_workers
        self.verbose = verbose
        self._lock = threading.Lock()
        self._elapsed = 0.0
        self._started = None
        self._processed = 0

    # -----------------------------------------------------------------
    # metrics
    # -----------------------------------------------------------------

    @property
    def elapsed_time(self):
        """
        Seconds spent processing, since the last time a corpus was
        processed (including the current run, if any)
        """
        started = self._started
        running = time.perf_counter() - started if started else 0.0
        return self._elapsed + running

    @property
    def documents_processed(self):
        "documents processed since the last time a corpus was processed"
        return self._processed

    def documents_per_second(self):
        "throughput over the documents processed so far"
        elapsed = self.elapsed_time
        if elapsed <= 0:
            return 0.0
        return self._processed / elapsed

    def total_time_processing(self):
        "elapsed time as a string, eg. `1.234 s`"
        return '%.4g s' % self.elapsed_time

    def reset(self):
        "zero the metrics"
        with self._lock:
            self._elapsed = 0.0
            self._started = None
            self._processed = 0

    def _count(self):
        with self._lock:
            self._processed += 1
            count = self._processed
        if self.verbose and count % PROGRESS_EVERY == 0:
            print('%d (%.2f documents/s)' %
                  (count, self.documents_per_second()),
                  file=sys.stderr)

    # -----------------------------------------------------------------
    # processing
    # -----------------------------------------------------------------

    def process_document(self, document):
        """
        Complete the pipeline's types on a single document (in the
        calling thread). Counts towards the metrics.
        """
        start = time.perf_counter()
        try:
            process(document, *self.types, cache=self.cache)
        finally:
            with self._lock:
                self._elapsed += time.perf_counter() - start
        self._count()
        return document

    def _handle(self, document, worker, writer):
        "what a worker does with each document"
        process(document, *self.types, cache=self.cache)
        self._count()
        if writer is not None:
            writer.write(document, worker)
        if self.on_complete is not None:
            self.on_complete(document)

    def _run(self, documents, writer=None, keep=False):
        """
        Feed documents through the worker pool.

        Return the processed documents in input order if `keep`
        """
        work = queue.Queue(maxsize=self.queue_size)
        failures = []
        stop = threading.Event()
        results = {}

        def worker(index):
            "process documents until told to stop"
            while True:
                item = work.get()
                if item is _DONE:
                    return
                if stop.is_set():
                    # drain without processing
                    continue
                seq, document = item
                try:
                    self._handle(document, index, writer)
                # pylint: disable=broad-except
                except Exception as err:
                    # pylint: enable=broad-except
                    failures.append(err)
                    stop.set()
                    continue
                if keep:
                    results[seq] = document

        threads = [threading.Thread(target=worker, args=(i,),
                                    name='strata-worker-%d' % i,
                                    daemon=True)
                   for i in range(self.num_workers)]
        for thread in threads:
            thread.start()
        try:
            for seq, document in enumerate(documents):
                if stop.is_set():
                    break
                work.put((seq, document))
        finally:
            for _ in threads:
                work.put(_DONE)
            for thread in threads:
                thread.join()
        if failures:
            raise failures[0]
        return [results[k] for k in sorted(results)]

    def process(self, corpus):
        """
        Complete the pipeline's types on every document of the corpus,
        returning the resulting corpus (see module docstring).

        Metrics are reset first.
        """
        self.reset()
        self._started = time.perf_counter()
        try:
            return self._process(corpus)
        finally:
            with self._lock:
                self._elapsed += time.perf_counter() - self._started
                self._started = None

    def _process(self, corpus):
        ctype = corpus.corpus_type
        if ctype is CorpusType.DISTRIBUTED:
            result = corpus.annotate_partitions(self.types,
                                                self.cache.registry)
            with self._lock:
                self._processed += result.size()
            if self.on_complete is not None:
                for document in result:
                    self.on_complete(document)
            return result if self.return_corpus else corpus
        elif ctype is CorpusType.OFF_HEAP and self.return_corpus:
            directory = temporary_directory()
            with PartitionWriter(directory, self.partitions) as writer:
                self._run(corpus, writer=writer)
            return FileCorpus(directory, JSON_OPL)
        elif self.return_corpus:
            return InMemoryCorpus(self._run(corpus, keep=True))
        else:
            self._run(corpus)
            return corpus
