# Author: Eric Kow
# License: BSD3

"""
Annotators and how we find them.

An `Annotator` declares which types it produces (`satisfies`) and
which it needs to be present beforehand (`requires`). To make sure a
document has some type of annotation, we

1. skip it if the document has already completed that type
2. ask the cache for the annotator configured for the type and the
   document's language
3. recursively make sure of its prerequisites
4. run it, and mark all the types it satisfies as completed

See `process`.

Which annotator to use for a type is decided by an
`AnnotatorRegistry`; an `AnnotatorCache` makes sure there is only one
live instance of each per (type, language). Both are explicit objects
that can be passed around, but there is a process-wide default pair
(`REGISTRY` and `CACHE`) for convenience.
"""

# pylint: disable=too-few-public-methods

import threading

from ..language import Language
from ..types import AnnotationType, ConfigurationError, as_type


class NoAnnotatorError(ConfigurationError, LookupError):
    """
    No annotator has been configured for a type
    """
    def __init__(self, atype, language):
        msg = 'No annotator configured for %s (language: %s)' %\
            (atype, language)
        super(NoAnnotatorError, self).__init__(msg)
        self.type = atype
        self.language = language


class GoldStandardError(ConfigurationError):
    """
    Gold standard annotations are made by people, not annotators
    """
    def __init__(self, atype):
        msg = '%s is a gold standard type; it cannot be produced by an '\
            'annotator' % atype
        super(GoldStandardError, self).__init__(msg)
        self.type = atype


class AnnotatorMismatchError(ConfigurationError):
    """
    The annotator configured for a type does not claim to produce it
    """
    def __init__(self, annotator, atype):
        msg = '%s does not satisfy %s' % (annotator.identity(), atype)
        super(AnnotatorMismatchError, self).__init__(msg)
        self.annotator = annotator
        self.type = atype


class ResolutionCycleError(ConfigurationError):
    """
    The annotators configured for some types require each other
    """
    def __init__(self, cycle):
        msg = 'Cyclic annotator requirements: %s' %\
            ' -> '.join(str(x) for x in cycle)
        super(ResolutionCycleError, self).__init__(msg)
        self.cycle = cycle


class Annotator:
    """
    Something that adds annotations to a document.

    Subclasses must implement `satisfies` and `annotate`, and should
    override `requires` if they depend on other annotations being
    present. Bump `version` when the output changes, so that
    documents record which version of the annotator produced them.
    """
    version = '1.0'

    def satisfies(self):
        """
        Types this annotator produces

        :rtype: frozenset of AnnotatableType
        """
        raise NotImplementedError()

    def requires(self):
        """
        Types which must be completed before this annotator runs

        :rtype: frozenset of AnnotatableType
        """
        return frozenset()

    def annotate(self, document):
        """
        Add annotations to the document
        """
        raise NotImplementedError()

    def identity(self):
        """
        String identifying the class and version of this annotator,
        as recorded in the documents it completes
        """
        klass = self.__class__
        return '%s.%s::%s' % (klass.__module__, klass.__name__,
                              self.version)

    def __repr__(self):
        return '<%s>' % self.identity()


def _key(atype, language):
    "(type, language) with names resolved"
    if language is not None:
        language = Language.from_code(language)
    return as_type(atype), language


class AnnotatorRegistry:
    """
    Which annotator to use for which type (and language).

    Entries are either annotators, or zero-argument callables
    (typically `Annotator` subclasses) that build one. An entry for a
    specific language wins over the language-neutral entry for the
    same type.

    Registries are pickled along with the documents sent to other
    processes, so their entries should be picklable too (classes and
    module-level functions are; lambdas are not).
    """
    def __init__(self):
        self._entries = {}

    def register(self, atype, factory, language=None):
        """
        Use the given annotator (or factory) for the type, either for
        the given language or by default
        """
        atype, language = _key(atype, language)
        if isinstance(atype, AnnotationType) and atype.is_gold_standard():
            raise GoldStandardError(atype)
        self._entries[(atype, language)] = factory

    def unregister(self, atype, language=None):
        "forget the entry for a type (and language)"
        self._entries.pop(_key(atype, language), None)

    def has_annotator(self, atype, language=None):
        "True if `find` would find an entry"
        atype, language = _key(atype, language)
        return (atype, language) in self._entries or\
            (atype, None) in self._entries

    def types(self):
        "types with at least one entry"
        return sorted(set(t for t, _ in self._entries))

    def find(self, atype, language=None):
        """
        A fresh annotator for the type and language

        :raises GoldStandardError: for gold standard types
        :raises NoAnnotatorError: if nothing is configured
        """
        atype, language = _key(atype, language)
        if isinstance(atype, AnnotationType) and atype.is_gold_standard():
            raise GoldStandardError(atype)
        factory = self._entries.get((atype, language))
        if factory is None:
            factory = self._entries.get((atype, None))
        if factory is None:
            raise NoAnnotatorError(atype, language)
        if isinstance(factory, Annotator):
            return factory
        return factory()


class AnnotatorCache:
    """
    At most one live annotator per (type, language).

    Annotators are built from the registry on first use. Each key has
    its own lock, so building a slow annotator (eg. loading a model)
    for one type does not hold up the others; once built, lookups do
    not lock at all.
    """
    def __init__(self, registry=None):
        self.registry = registry if registry is not None\
            else AnnotatorRegistry()
        self._annotators = {}
        self._locks = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._annotators)

    def _key_lock(self, key):
        with self._lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def get(self, atype, language=None):
        """
        The annotator for a type and language, built from the registry
        if there is none yet

        :raises NoAnnotatorError: nothing configured for the type
        :raises AnnotatorMismatchError: the configured annotator does
            not claim to satisfy the type
        """
        key = _key(atype, language)
        atype, language = key
        found = self._annotators.get(key)
        if found is not None:
            return found
        with self._key_lock(key):
            found = self._annotators.get(key)
            if found is None:
                found = self.registry.find(atype, language)
                if atype not in found.satisfies():
                    raise AnnotatorMismatchError(found, atype)
                self._annotators[key] = found
            return found

    def set_annotator(self, atype, language, annotator):
        """
        Use this annotator for the type and language, replacing any
        cached one

        :raises AnnotatorMismatchError: if it does not satisfy the type
        """
        key = _key(atype, language)
        if key[0] not in annotator.satisfies():
            raise AnnotatorMismatchError(annotator, key[0])
        with self._key_lock(key):
            self._annotators[key] = annotator

    def invalidate(self, atype, language=None):
        "forget the annotator for a type and language"
        key = _key(atype, language)
        with self._key_lock(key):
            self._annotators.pop(key, None)

    def clear(self):
        "forget all annotators"
        with self._lock:
            self._annotators.clear()
            self._locks.clear()


REGISTRY = AnnotatorRegistry()
"default annotator registry"

CACHE = AnnotatorCache(REGISTRY)
"default annotator cache, backed by `REGISTRY`"


# ---------------------------------------------------------------------
# resolution
# ---------------------------------------------------------------------

def _run(document, annotator, cache, in_flight):
    "run an annotator after its prerequisites, and record what it did"
    for prereq in annotator.requires():
        _ensure(document, prereq, cache, in_flight)
    annotator.annotate(document)
    identity = annotator.identity()
    for atype in annotator.satisfies():
        document.set_completed(atype, True, identity)


def _ensure(document, atype, cache, in_flight):
    atype = as_type(atype)
    if atype is None or document.is_completed(atype):
        return
    if atype in in_flight:
        cycle = in_flight[in_flight.index(atype):] + [atype]
        raise ResolutionCycleError(cycle)
    annotator = cache.get(atype, document.language)
    if atype not in annotator.satisfies():
        raise AnnotatorMismatchError(annotator, atype)
    in_flight.append(atype)
    try:
        _run(document, annotator, cache, in_flight)
    finally:
        in_flight.pop()


def process(document, *types, cache=None):
    """
    Make sure the document has completed all the given types (in
    order), running whichever annotators are needed to get there.

    Types which are already completed are left alone; `None` entries
    are ignored. Types may be given by name (see `strata.types.as_type`).

    :param cache: where to find annotators (default: `CACHE`)
    :type cache: AnnotatorCache

    :raises NoAnnotatorError: some type has no annotator
    :raises ResolutionCycleError: annotator requirements loop back on
        themselves
    """
    cache = CACHE if cache is None else cache
    for atype in types:
        _ensure(document, atype, cache, [])
    return document


def process_with(document, *annotators, cache=None):
    """
    Run the given annotators on the document (after whatever they
    require), unless everything they satisfy is already completed.

    Prerequisites are found through the cache (default: `CACHE`)
    """
    cache = CACHE if cache is None else cache
    for annotator in annotators:
        if all(document.is_completed(t) for t in annotator.satisfies()):
            continue
        _run(document, annotator, cache, list(annotator.satisfies()))
    return document
