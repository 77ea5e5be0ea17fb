# Author: Eric Kow
# License: BSD3

"""
Corpus management.

A corpus is an iterable collection of documents. How the documents
are held, and how they get annotated, depends on the kind of corpus
(see `CorpusType`):

* `InMemoryCorpus`: a plain list of documents
* `StreamCorpus`: documents from an iterator, which can only be read
  once
* `FileCorpus` (off-heap): documents are read from disk (a file or a
  directory of partition files) each time the corpus is iterated
  over, so that only a few are in memory at any given time
* `DistributedCorpus`: documents are held serialised in partitions,
  and annotated by a pool of worker processes (through joblib), each
  taking care of whole partitions

Corpora are annotated with `Corpus.annotate`, which returns a new
corpus of the same kind (see `strata.processing.Pipeline`).

Use `from_documents`, `from_texts` or `read` to make one.
"""

# pylint: disable=too-many-arguments

import atexit
import os
import random
import shutil
import tempfile
from collections import Counter, defaultdict
from enum import Enum
from functools import partial
from itertools import chain

import pandas as pd
from joblib import Parallel, cpu_count, delayed

from ..annotation import Document
from ..language import Language
from ..types import AnnotationType, TOKEN, as_type
from .formats import JSON_OPL, get_format


def temporary_directory():
    "fresh directory, removed when the interpreter exits"
    path = tempfile.mkdtemp(prefix='strata-')
    atexit.register(shutil.rmtree, path, True)
    return path


class CorpusType(Enum):
    """
    How a corpus holds its documents
    """
    IN_MEMORY = 1
    OFF_HEAP = 2
    DISTRIBUTED = 3
    STREAM = 4

    def __str__(self):
        return self.name


class Corpus:
    """
    Abstract corpus; subclasses provide `__iter__` and
    `corpus_type`
    """
    corpus_type = None

    def __iter__(self):
        raise NotImplementedError()

    def __repr__(self):
        return '<%s corpus>' % self.corpus_type

    def annotate(self, *types, **options):
        """
        Make sure every document has completed the given types,
        returning the resulting corpus

        Keyword arguments are passed on to
        `strata.processing.Pipeline`
        """
        from ..processing.pipeline import Pipeline
        return Pipeline(types, **options).process(self)

    def write(self, fmt, destination):
        """
        Save the documents in the given format (or format name)
        """
        get_format(fmt).write(iter(self), destination)
        return destination

    def map(self, function):
        "corpus of the results of applying a function to each document"
        return InMemoryCorpus([function(doc) for doc in self])

    def filter(self, predicate):
        "corpus of the documents satisfying a predicate"
        return InMemoryCorpus([doc for doc in self if predicate(doc)])

    def cache(self):
        "in-memory copy of this corpus"
        return InMemoryCorpus(list(self))

    def size(self):
        "number of documents"
        return sum(1 for _ in self)

    def is_empty(self):
        "True if there are no documents"
        for _ in self:
            return False
        return True

    def sample(self, count, rng=None):
        """
        In-memory corpus of (at most) `count` documents picked at
        random, in a single pass (reservoir sampling)

        :param rng: source of randomness (default: a fresh
            `random.Random`)
        """
        rng = rng or random.Random()
        reservoir = []
        for i, doc in enumerate(self):
            if i < count:
                reservoir.append(doc)
            else:
                j = rng.randint(0, i)
                if j < count:
                    reservoir[j] = doc
        return InMemoryCorpus(reservoir)

    def group_by(self, key):
        """
        Dictionary from key to the list of documents which have that
        key (`key` being a function on documents)
        """
        groups = defaultdict(list)
        for doc in self:
            groups[key(doc)].append(doc)
        return dict(groups)

    def annotation_counts(self, atypes=None):
        """
        Table of annotation counts: one row per document (indexed by
        document id), one column per annotation type.

        If no types are given, we count every type found in the
        corpus.

        :rtype: pandas.DataFrame
        """
        if atypes is not None:
            atypes = [t if isinstance(t, AnnotationType)
                      else AnnotationType.create(t) for t in atypes]
        rows = []
        index = []
        for doc in self:
            counts = defaultdict(int)
            if atypes is None:
                for anno in doc.annotations():
                    counts[anno.type.name] += 1
            else:
                for atype in atypes:
                    counts[atype.name] = len(doc.annotations(atype))
            index.append(doc.id)
            rows.append(counts)
        columns = None if atypes is None else [t.name for t in atypes]
        table = pd.DataFrame(rows, index=index, columns=columns)
        return table.fillna(0).astype(int)

    def union(self, other):
        "corpus of the documents in this corpus followed by the other's"
        return InMemoryCorpus(chain(self, other))

    def terms(self, atype=TOKEN, lowercase=False):
        """
        How often each string occurs as the text of an annotation of
        the given type (tokens by default), over the whole corpus.
        Blank strings are not counted.

        :rtype: collections.Counter
        """
        atype = as_type(atype)
        counts = Counter()
        for doc in self:
            counts.update(_term_strings(doc, atype, lowercase))
        return counts

    def document_frequencies(self, atype=TOKEN, lowercase=True):
        """
        How many documents have at least one annotation of the given
        type (tokens by default) with each text.

        Texts are lowercased unless asked otherwise.

        :rtype: collections.Counter
        """
        atype = as_type(atype)
        counts = Counter()
        for doc in self:
            counts.update(set(_term_strings(doc, atype, lowercase)))
        return counts

    def apply_lexicon(self, lexicon, atype, case_sensitive=False,
                      cache=None):
        """
        Corpus where each document has annotations of the given type
        for the phrases of the lexicon (a dictionary from phrases to
        tags) it contains, see `strata.external.LexiconAnnotator`.

        Documents which have already completed the type are left as
        they are. Tokens and sentences come from the annotator cache
        (default: `strata.processing.CACHE`) if they are missing.
        """
        from ..processing.annotator import CACHE
        cache = CACHE if cache is None else cache
        annotator = _lexicon_annotator(lexicon, atype, case_sensitive)
        return self.map(partial(_apply_annotator, annotator, cache))


def _term_strings(doc, atype, lowercase):
    "non-blank texts of annotations of the given type"
    for anno in doc.annotations(atype):
        text = anno.text.strip()
        if not text:
            continue
        yield text.lower() if lowercase else text


def _lexicon_annotator(lexicon, atype, case_sensitive):
    from ..external.annotators import LexiconAnnotator
    return LexiconAnnotator(atype, lexicon, case_sensitive=case_sensitive)


def _apply_annotator(annotator, cache, doc):
    from ..processing.annotator import process_with
    return process_with(doc, annotator, cache=cache)


class InMemoryCorpus(Corpus):
    """
    Documents held in a list
    """
    corpus_type = CorpusType.IN_MEMORY

    def __init__(self, documents=None):
        self.documents = list(documents or [])

    def __iter__(self):
        return iter(self.documents)

    def __len__(self):
        return len(self.documents)

    def __getitem__(self, idx):
        return self.documents[idx]

    def size(self):
        return len(self.documents)

    def cache(self):
        return self


class StreamCorpus(Corpus):
    """
    Documents from an iterable, read at most once.

    `map` and `filter` are lazy on stream corpora.
    """
    corpus_type = CorpusType.STREAM

    def __init__(self, documents):
        self._documents = documents
        self._consumed = False

    def __iter__(self):
        if self._consumed:
            raise RuntimeError('Stream corpora can only be read once')
        self._consumed = True
        return iter(self._documents)

    def map(self, function):
        return StreamCorpus(function(doc) for doc in self)

    def filter(self, predicate):
        return StreamCorpus(doc for doc in self if predicate(doc))

    def union(self, other):
        return StreamCorpus(chain(self, other))


class FileCorpus(Corpus):
    """
    Documents read back from disk on each iteration (off-heap)

    :param path: a file or a directory of files
    :param fmt: format (or format name) of the files
    """
    corpus_type = CorpusType.OFF_HEAP

    def __init__(self, path, fmt=JSON_OPL):
        self.path = path
        self.fmt = get_format(fmt)

    def __iter__(self):
        return self.fmt.read(self.path)

    def __repr__(self):
        return '<%s corpus: %s [%s]>' % (self.corpus_type, self.path,
                                         self.fmt.name)


# ---------------------------------------------------------------------
# distributed
# ---------------------------------------------------------------------

def _annotate_partition(lines, types, registry):
    """
    Annotate a partition of serialised documents in a worker process,
    returning the serialised results
    """
    from ..processing.annotator import AnnotatorCache, process
    cache = AnnotatorCache(registry)
    res = []
    for line in lines:
        doc = JSON_OPL.loads(line)
        process(doc, *types, cache=cache)
        res.append(JSON_OPL.dumps(doc))
    return res


def _map_partition(lines, function):
    return [JSON_OPL.dumps(function(JSON_OPL.loads(x))) for x in lines]


def _filter_partition(lines, predicate):
    return [x for x in lines if predicate(JSON_OPL.loads(x))]


def _process_with_partition(lines, annotator, registry):
    "run one annotator over a partition (prerequisites from the registry)"
    from ..processing.annotator import AnnotatorCache, process_with
    cache = AnnotatorCache(registry)
    res = []
    for line in lines:
        doc = JSON_OPL.loads(line)
        process_with(doc, annotator, cache=cache)
        res.append(JSON_OPL.dumps(doc))
    return res


class DistributedCorpus(Corpus):
    """
    Documents held serialised in partitions, processed in parallel
    with joblib (see module docstring).

    Whatever gets sent to the workers (annotator registry entries,
    functions passed to `map` and `filter`) has to be picklable for
    process-based backends.

    :param n_jobs: joblib worker count (-1 or None for one per CPU)
    :param backend: joblib backend (eg. `loky`, `threading`)
    :param partitions: number of partitions (default: one per worker)
    """
    corpus_type = CorpusType.DISTRIBUTED

    def __init__(self, documents=None, n_jobs=-1, backend='loky',
                 partitions=None):
        self.n_jobs = n_jobs
        self.backend = backend
        self.partitions = partitions or\
            (n_jobs if n_jobs is not None and n_jobs > 0 else cpu_count())
        self._lines = [JSON_OPL.dumps(doc) for doc in documents or []]

    def _derive(self, lines):
        "corpus like this one, but with other documents"
        res = DistributedCorpus(n_jobs=self.n_jobs, backend=self.backend,
                                partitions=self.partitions)
        res._lines = lines
        return res

    def __iter__(self):
        return (JSON_OPL.loads(x) for x in self._lines)

    def __len__(self):
        return len(self._lines)

    def size(self):
        return len(self._lines)

    def _chunks(self):
        size = max(1, -(-len(self._lines) // self.partitions))
        return [self._lines[i:i + size]
                for i in range(0, len(self._lines), size)]

    def _parallel(self, function, *args):
        "run a function over each partition, and concatenate the results"
        results = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(function)(chunk, *args) for chunk in self._chunks())
        return [x for chunk in results for x in chunk]

    def annotate_partitions(self, types, registry):
        """
        New distributed corpus with the given types completed on each
        document, using annotators from the registry
        """
        return self._derive(self._parallel(_annotate_partition,
                                           tuple(types), registry))

    def map(self, function):
        return self._derive(self._parallel(_map_partition, function))

    def filter(self, predicate):
        return self._derive(self._parallel(_filter_partition, predicate))

    def union(self, other):
        if isinstance(other, DistributedCorpus):
            extra = list(other._lines)
        else:
            extra = [JSON_OPL.dumps(doc) for doc in other]
        return self._derive(self._lines + extra)

    def repartition(self, partitions):
        """
        The same documents, split into the given number of partitions
        """
        if partitions < 1:
            raise ValueError('Need at least one partition, not %d'
                             % partitions)
        res = self._derive(self._lines)
        res.partitions = partitions
        return res

    def apply_lexicon(self, lexicon, atype, case_sensitive=False,
                      cache=None):
        # annotator caches hold locks, so only the registry goes to the
        # workers
        from ..processing.annotator import CACHE
        registry = (CACHE if cache is None else cache).registry
        annotator = _lexicon_annotator(lexicon, atype, case_sensitive)
        return self._derive(self._parallel(_process_with_partition,
                                           annotator, registry))


# ---------------------------------------------------------------------
# making corpora
# ---------------------------------------------------------------------

def from_documents(documents, corpus_type=CorpusType.IN_MEMORY, **kwargs):
    """
    Corpus of the given kind holding the documents.

    Off-heap corpora are written to a temporary file first; other
    keyword arguments go to the `DistributedCorpus` constructor.
    """
    corpus_type = CorpusType[corpus_type.upper()]\
        if isinstance(corpus_type, str) else corpus_type
    if corpus_type is CorpusType.IN_MEMORY:
        return InMemoryCorpus(documents)
    elif corpus_type is CorpusType.STREAM:
        return StreamCorpus(documents)
    elif corpus_type is CorpusType.DISTRIBUTED:
        return DistributedCorpus(documents, **kwargs)
    path = os.path.join(temporary_directory(), 'part-00000' +
                        JSON_OPL.extension)
    JSON_OPL.write(documents, path)
    return FileCorpus(os.path.dirname(path), JSON_OPL)


def from_texts(texts, language=Language.ENGLISH,
               corpus_type=CorpusType.IN_MEMORY, **kwargs):
    """
    Corpus of documents made from strings
    """
    docs = (Document(text, language=language) for text in texts)
    if corpus_type is CorpusType.IN_MEMORY:
        docs = list(docs)
    return from_documents(docs, corpus_type, **kwargs)


def read(path, fmt=JSON_OPL, corpus_type=CorpusType.OFF_HEAP, **kwargs):
    """
    Corpus of the documents in a file or directory.

    Off-heap corpora read the files again each time they are iterated
    over; other kinds read them once.
    """
    fmt = get_format(fmt)
    corpus_type = CorpusType[corpus_type.upper()]\
        if isinstance(corpus_type, str) else corpus_type
    if not os.path.exists(path):
        raise IOError('No such file or directory: %s' % path)
    if corpus_type is CorpusType.OFF_HEAP:
        return FileCorpus(path, fmt)
    return from_documents(fmt.read(path), corpus_type, **kwargs)
