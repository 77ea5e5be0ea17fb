# Author: Eric Kow
# License: BSD3

"""
The things an annotator can produce: annotation types, attribute
types and relation types.

Types are interned symbols. Asking for a type by name either creates
it or hands back the instance that already exists, so that
`AnnotationType.create('token') is AnnotationType.create('TOKEN')`.
Names are normalised (case, surrounding space, and `-`/`.`/space
separators do not matter).

Annotation types are hierarchical (every type but `ROOT` has a parent,
`ROOT` by default) and come in gold standard / automatic pairs: a name
prefixed with `@` denotes the gold standard counterpart of the bare
name. Both members of a pair share the same structure (parent,
declared attributes), which is always recorded on the bare form.

Once a type is registered, its structure is fixed for the life of the
process; asking for it again with a conflicting structure is a
`TypeDefinitionError`.
"""

import re
import threading

from .language import Language


GOLD_SIGIL = '@'
"prefix marking a gold standard annotation type"

ROOT_NAME = 'ROOT'

_SEPARATORS = re.compile(r'[\s.\-]+')


class ConfigurationError(Exception):
    """
    Something is wrong with the way types or annotators have been
    set up. These are never worth retrying.
    """
    def __init__(self, msg):
        super(ConfigurationError, self).__init__(msg)


class TypeDefinitionError(ConfigurationError, ValueError):
    """
    Invalid type name, or a conflicting redefinition of an existing
    type
    """
    pass


class UndefinedTypeError(ConfigurationError, LookupError):
    """
    Reference to a type that was never registered
    """
    pass


def normalize_name(name):
    """
    Canonical form of a type name (upper case, `_` separated,
    gold standard sigil preserved)
    """
    if name is None:
        raise TypeDefinitionError('None is not a valid type name')
    orig = name
    name = name.strip()
    is_gold = name.startswith(GOLD_SIGIL)
    if is_gold:
        name = name[len(GOLD_SIGIL):].strip()
    name = _SEPARATORS.sub('_', name).strip('_').upper()
    if not name:
        raise TypeDefinitionError('%r is not a valid type name' % orig)
    return GOLD_SIGIL + name if is_gold else name


class _TypeIndex:
    """
    Intern table for a single family of types.

    Lookups do not take the lock; registration does, and checks
    again once it holds it.
    """
    def __init__(self, family):
        self.family = family
        self._types = {}
        self._lock = threading.RLock()

    def get(self, name):
        "registered type for a normalised name, or None"
        return self._types.get(name)

    def register(self, name, factory):
        """
        Return the type registered under `name`, calling
        `factory(name)` to build it if there is none yet.

        Returns a pair of the type and whether it was freshly built
        """
        found = self._types.get(name)
        if found is not None:
            return found, False
        with self._lock:
            found = self._types.get(name)
            if found is not None:
                return found, False
            found = factory(name)
            self._types[name] = found
            return found, True

    def values(self):
        "snapshot of all types in the table"
        with self._lock:
            return list(self._types.values())


class AnnotatableType:
    """
    Common behaviour for the three type families.

    Equality is identity: there is only ever one instance per
    normalised name and family.
    """
    family = None
    _index = None

    def __init__(self, name):
        self._name = name

    @property
    def name(self):
        "normalised name of this type"
        return self._name

    def qualified_name(self):
        """
        Name prefixed with the family (eg. `annotation.TOKEN`);
        see `from_string`
        """
        return '%s.%s' % (self.family, self._name)

    def __str__(self):
        return self._name

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self._name)

    def __lt__(self, other):
        return (self.family, self._name) < (other.family, other._name)

    @classmethod
    def is_defined(cls, name):
        """
        True if a type has already been registered under this name
        """
        try:
            name = normalize_name(name)
        except TypeDefinitionError:
            return False
        return cls._index.get(name) is not None

    @classmethod
    def value_of(cls, name):
        """
        The registered type for this name

        :raises UndefinedTypeError: if there is no such type
        """
        found = cls._index.get(normalize_name(name))
        if found is None:
            raise UndefinedTypeError('No %s type named %s' %
                                     (cls.family, name))
        return found

    @classmethod
    def values(cls):
        """
        Snapshot of all types of this family known so far
        """
        return cls._index.values()


class AnnotationType(AnnotatableType):
    """
    Type of an annotation, eg. TOKEN, SENTENCE, ENTITY

    Use `AnnotationType.create` rather than the constructor
    """
    family = 'annotation'
    _index = _TypeIndex(family)

    def __init__(self, name, parent=None, attributes=frozenset()):
        super(AnnotationType, self).__init__(name)
        self._parent = parent
        self._attributes = attributes
        self._declared = None
        self._lock = threading.Lock()

    @classmethod
    def create(cls, name, parent=None, attributes=None):
        """
        Register a new annotation type or return the existing one.

        :param parent: parent type; `None` means `ROOT` for a new type
            and "whatever it already is" for an existing one
        :type parent: AnnotationType

        :param attributes: attribute types annotations of this type
            are expected to carry (in addition to the parent's)
        :type attributes: iterable of AttributeType

        :raises TypeDefinitionError: blank name, or existing type with
            a different parent or attribute set
        """
        name = normalize_name(name)
        if parent is not None and not isinstance(parent, AnnotationType):
            raise TypeDefinitionError('Parent of %s must be an annotation '
                                      'type, not %r' % (name, parent))
        if attributes is not None:
            attributes = frozenset(_as_attribute(x) for x in attributes)

        if name.startswith(GOLD_SIGIL):
            # structure lives on the bare name
            cls.create(name[len(GOLD_SIGIL):], parent, attributes)
            atype, _ = cls._index.register(name, cls)
            return atype

        if parent is not None:
            parent = parent.non_gold_standard_version()
            if parent.name == name:
                raise TypeDefinitionError('%s cannot be its own parent' %
                                          name)

        def factory(key):
            "fresh type with the requested structure"
            if key == ROOT_NAME:
                real_parent = None
            else:
                real_parent = parent or cls.value_of(ROOT_NAME)
            return cls(key, real_parent, attributes or frozenset())

        atype, fresh = cls._index.register(name, factory)
        if not fresh:
            if parent is not None and atype._parent is not parent:
                raise TypeDefinitionError(
                    'Attempting to register an existing annotation type '
                    '(%s) with a different parent type (%s, was %s)' %
                    (name, parent, atype._parent))
            if attributes is not None and atype._attributes != attributes:
                raise TypeDefinitionError(
                    'Attempting to register an existing annotation type '
                    '(%s) with a different set of attributes' % name)
        return atype

    def __reduce__(self):
        base = self.non_gold_standard_version()
        return (AnnotationType.create,
                (self._name, base._parent, base._attributes))

    def is_gold_standard(self):
        """
        True if this is the gold standard member of its pair
        """
        return self._name.startswith(GOLD_SIGIL)

    def gold_standard_version(self):
        """
        The gold standard counterpart of this type (itself if it is
        already gold standard)
        """
        if self.is_gold_standard():
            return self
        return AnnotationType.create(GOLD_SIGIL + self._name)

    def non_gold_standard_version(self):
        """
        The automatic counterpart of this type (itself if it is not
        gold standard)
        """
        if self.is_gold_standard():
            return AnnotationType.create(self._name[len(GOLD_SIGIL):])
        return self

    @property
    def parent(self):
        """
        Parent type; `None` for `ROOT`
        """
        return self.non_gold_standard_version()._parent

    def ancestors(self):
        """
        Parent chain of this type, nearest first, ending with ROOT
        """
        res = []
        current = self.parent
        while current is not None:
            res.append(current)
            current = current.parent
        return res

    def is_instance(self, other):
        """
        True if annotations of this type should count as being of the
        other type, that is if both are the same (modulo gold
        standard), or if the other type is an ancestor of this one.

        Every type is an instance of `ROOT`.
        """
        if not isinstance(other, AnnotationType):
            return False
        if self is other or\
                self.gold_standard_version() is other.gold_standard_version():
            return True
        target = other.non_gold_standard_version()
        return any(x is target for x in self.ancestors())

    def attributes(self):
        """
        Attribute types configured on this type itself (not
        inherited)
        """
        return self.non_gold_standard_version()._attributes

    def declared_attributes(self):
        """
        Attribute types configured on this type and all its
        ancestors. Computed once.
        """
        base = self.non_gold_standard_version()
        if base._declared is None:
            with base._lock:
                if base._declared is None:
                    declared = set(base._attributes)
                    if base._parent is not None:
                        declared.update(base._parent.declared_attributes())
                    base._declared = frozenset(declared)
        return base._declared


class AttributeType(AnnotatableType):
    """
    Name (and optionally value type) of an annotation attribute,
    eg. PART_OF_SPEECH

    `value_type` is a Python class which values must be instances of;
    `None` leaves the attribute untyped. See `strata.attribute` for
    the type checks and codecs which use this information.
    """
    family = 'attribute'
    _index = _TypeIndex(family)

    def __init__(self, name, value_type=None, codec=None):
        super(AttributeType, self).__init__(name)
        self.value_type = value_type
        self.codec = codec

    @classmethod
    def create(cls, name, value_type=None, codec=None):
        """
        Register a new attribute type or return the existing one

        :raises TypeDefinitionError: blank name, or existing attribute
            with a different value type or codec
        """
        name = normalize_name(name)
        if name.startswith(GOLD_SIGIL):
            raise TypeDefinitionError('Attributes have no gold standard '
                                      'version: %s' % name)
        atype, fresh = cls._index.register(
            name, lambda key: cls(key, value_type, codec))
        if not fresh:
            if value_type is not None and atype.value_type is not value_type:
                raise TypeDefinitionError(
                    'Attempting to register an existing attribute (%s) '
                    'with a new value type' % name)
            if codec is not None and atype.codec is not codec:
                raise TypeDefinitionError(
                    'Attempting to register an existing attribute (%s) '
                    'with a new codec' % name)
        return atype

    def __reduce__(self):
        return (AttributeType.create, (self._name, self.value_type))


class RelationType(AnnotatableType):
    """
    Label of a relation between two annotations, eg. DEPENDENCY
    """
    family = 'relation'
    _index = _TypeIndex(family)

    @classmethod
    def create(cls, name):
        """
        Register a new relation type or return the existing one
        """
        name = normalize_name(name)
        rtype, _ = cls._index.register(name, cls)
        return rtype

    def __reduce__(self):
        return (RelationType.create, (self._name,))


FAMILIES = {
    AnnotationType.family: AnnotationType,
    AttributeType.family: AttributeType,
    RelationType.family: RelationType,
}


def _as_attribute(thing):
    "attribute type for a name, or the type itself"
    if isinstance(thing, AttributeType):
        return thing
    return AttributeType.create(thing)


def from_string(text):
    """
    Read a type from its string representation.

    Qualified names (`annotation.TOKEN`, `attribute.lemma`,
    `relation.dependency`) create the type if needed. Bare names are
    looked up in each family in turn and must already exist.
    """
    if text is None:
        raise UndefinedTypeError('None is not a type')
    prefix, sep, rest = text.partition('.')
    if sep:
        family = FAMILIES.get(prefix.strip().lower())
        if family is None:
            raise UndefinedTypeError('%s is not a type family (in %s)' %
                                     (prefix, text))
        return family.create(rest)
    for family in (AnnotationType, AttributeType, RelationType):
        if family.is_defined(text):
            return family.value_of(text)
    raise UndefinedTypeError('No type named %s' % text)


def as_type(thing):
    """
    The type for a (possibly qualified) name, or the type itself.

    Bare names of types not known in any family are taken to be new
    annotation types; `None` is passed through.
    """
    if thing is None or isinstance(thing, AnnotatableType):
        return thing
    try:
        return from_string(thing)
    except UndefinedTypeError:
        return AnnotationType.create(thing)


def to_string(atype):
    """
    Qualified string representation of a type (inverse of
    `from_string`)
    """
    return atype.qualified_name()


def annotation(name, parent=None, attributes=None):
    "Shorthand for `AnnotationType.create`"
    return AnnotationType.create(name, parent, attributes)


def attribute(name, value_type=None, codec=None):
    "Shorthand for `AttributeType.create`"
    return AttributeType.create(name, value_type, codec)


def relation(name):
    "Shorthand for `RelationType.create`"
    return RelationType.create(name)


# ---------------------------------------------------------------------
# common types
# ---------------------------------------------------------------------

ROOT = AnnotationType.create(ROOT_NAME)

AUTHOR = AttributeType.create('AUTHOR', str)
CATEGORY = AttributeType.create('CATEGORY', str)
CONFIDENCE = AttributeType.create('CONFIDENCE', float)
ENTITY_TYPE = AttributeType.create('ENTITY_TYPE', str)
INDEX = AttributeType.create('INDEX', int)
LANGUAGE = AttributeType.create('LANGUAGE', Language)
LEMMA = AttributeType.create('LEMMA', str)
MATCHED_STRING = AttributeType.create('MATCHED_STRING', str)
PART_OF_SPEECH = AttributeType.create('PART_OF_SPEECH', str)
SOURCE = AttributeType.create('SOURCE', str)
TAG = AttributeType.create('TAG', str)
TITLE = AttributeType.create('TITLE', str)

TOKEN = AnnotationType.create('TOKEN', attributes=[INDEX, PART_OF_SPEECH,
                                                   LEMMA])
SENTENCE = AnnotationType.create('SENTENCE', attributes=[INDEX])
PHRASE_CHUNK = AnnotationType.create('PHRASE_CHUNK',
                                     attributes=[PART_OF_SPEECH])
ENTITY = AnnotationType.create('ENTITY', attributes=[ENTITY_TYPE,
                                                     CONFIDENCE])
LEXICON_MATCH = AnnotationType.create('LEXICON_MATCH',
                                      attributes=[TAG, MATCHED_STRING,
                                                  CONFIDENCE])

DEPENDENCY = RelationType.create('DEPENDENCY')
