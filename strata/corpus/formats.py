# Author: Eric Kow
# License: BSD3

"""
Reading and writing documents.

A `DocumentFormat` knows how to turn one document into a string and
back (`dumps`/`loads`) and how to read and write whole collections of
them (`read`/`write`). Formats are looked up by name with
`get_format`.

* `JSON_OPL`: one JSON object per line, keeping everything about the
  document (text, language, document attributes, completed types and
  who completed them, annotations with their attributes and
  relations)
* `TEXT`: plain text, one document per file
* `TEXT_OPL`: plain text, one document per line
"""

# pylint: disable=protected-access

import json
import os

from ..annotation import Document, Relation
from ..attribute import decode_value, encode_value
from ..language import Language
from ..types import (AnnotationType, AttributeType, RelationType,
                     from_string)


class FormatError(ValueError):
    """
    A document could not be read back from its representation
    """
    def __init__(self, msg, source=None, line=None):
        if source is not None:
            where = source if line is None else '%s:%d' % (source, line)
            msg = '%s: %s' % (where, msg)
        super(FormatError, self).__init__(msg)
        self.source = source
        self.line = line


def _files_in(path):
    """
    The path itself if it is a file, or else the (non hidden) files
    in the directory, in name order
    """
    if not os.path.isdir(path):
        return [path]
    names = sorted(x for x in os.listdir(path) if not x.startswith('.'))
    return [os.path.join(path, x) for x in names
            if os.path.isfile(os.path.join(path, x))]


class DocumentFormat:
    """
    Abstract document format
    """
    name = None
    extension = ''

    def dumps(self, document):
        "string representation of a document"
        raise NotImplementedError()

    def loads(self, text):
        "document from its string representation"
        raise NotImplementedError()

    def read(self, path):
        """
        Iterate over the documents in a file, or in all the files of a
        directory (in name order)
        """
        raise NotImplementedError()

    def write(self, documents, path):
        "save documents to the given path"
        raise NotImplementedError()

    def __repr__(self):
        return '<%s format>' % self.name


class LineFormat(DocumentFormat):
    """
    Formats with one document per line
    """
    def read(self, path):
        for filename in _files_in(path):
            with open(filename, encoding='utf-8') as fin:
                for lineno, line in enumerate(fin, 1):
                    line = line.rstrip('\n')
                    if not line.strip():
                        continue
                    try:
                        yield self.loads(line)
                    except FormatError as err:
                        raise FormatError(str(err), filename, lineno)

    def write(self, documents, path):
        with open(path, 'w', encoding='utf-8') as fout:
            for doc in documents:
                print(self.dumps(doc), file=fout)


# ---------------------------------------------------------------------
# json
# ---------------------------------------------------------------------

def _encode_attributes(attributes):
    return {k.name: encode_value(k, v) for k, v in attributes.items()}


def _decode_attributes(attributes):
    res = {}
    for key, value in attributes.items():
        attr = AttributeType.create(key)
        res[attr] = decode_value(attr, value)
    return res


def document_to_json(doc):
    """
    JSON-friendly dictionary representation of a document
    """
    annotations = []
    for anno in doc.annotations():
        annotations.append({
            'id': anno.id,
            'type': anno.type.name,
            'start': anno.start,
            'end': anno.end,
            'attributes': _encode_attributes(anno.attributes()),
            'relations': [{'type': r.type.name,
                           'target': r.target,
                           'value': r.value,
                           'reciprocal': r.reciprocal}
                          for r in anno.relations()],
        })
    return {
        'id': doc.id,
        'text': doc.text,
        'language': doc.language.code,
        'attributes': _encode_attributes(doc.attributes()),
        'completed': {t.qualified_name(): p
                      for t, p in doc.completed().items()},
        'annotations': annotations,
    }


def document_from_json(obj):
    """
    Document from its JSON-friendly dictionary representation
    (see `document_to_json`)
    """
    try:
        doc = Document(obj['text'],
                       doc_id=obj.get('id'),
                       language=Language.from_code(obj.get('language')))
        for key, value in _decode_attributes(obj.get('attributes', {})).items():
            doc.put(key, value, type_check=False)
        for jtype, provider in obj.get('completed', {}).items():
            doc.set_completed(from_string(jtype), True, provider)
        relations = []
        for janno in obj.get('annotations', []):
            anno = doc.create_annotation(
                AnnotationType.create(janno['type']),
                janno['start'], janno['end'],
                anno_id=janno['id'])
            for key, value in\
                    _decode_attributes(janno.get('attributes', {})).items():
                anno.put(key, value, type_check=False)
            relations.append((anno, janno.get('relations', [])))
        for anno, jrels in relations:
            for jrel in jrels:
                anno._relations.append(
                    Relation(RelationType.create(jrel['type']),
                             jrel['target'],
                             jrel.get('value'),
                             jrel.get('reciprocal', False)))
    except (KeyError, TypeError, ValueError) as err:
        raise FormatError('Malformed document: %s' % err)
    return doc


class JsonFormat(LineFormat):
    """
    One JSON object per line
    """
    name = 'json_opl'
    extension = '.json'

    def dumps(self, document):
        return json.dumps(document_to_json(document), ensure_ascii=False)

    def loads(self, text):
        try:
            obj = json.loads(text)
        except ValueError as err:
            raise FormatError('Not valid JSON: %s' % err)
        if not isinstance(obj, dict):
            raise FormatError('Expected a JSON object, got %s' %
                              type(obj).__name__)
        return document_from_json(obj)


# ---------------------------------------------------------------------
# text
# ---------------------------------------------------------------------

class TextFormat(DocumentFormat):
    """
    Plain text.

    With `one_per_line`, each non-blank line of a file is a document
    (and documents are written one per line, newlines flattened to
    spaces). Otherwise each file is a document whose id is the file
    name without extension, and documents are written to a directory,
    one file each.
    """
    extension = '.txt'

    def __init__(self, one_per_line=False, language=Language.ENGLISH):
        self.one_per_line = one_per_line
        self.language = language
        self.name = 'text_opl' if one_per_line else 'text'

    def dumps(self, document):
        if self.one_per_line:
            return ' '.join(document.text.splitlines())
        return document.text

    def loads(self, text):
        return Document(text, language=self.language)

    def read(self, path):
        for filename in _files_in(path):
            with open(filename, encoding='utf-8') as fin:
                if self.one_per_line:
                    for line in fin:
                        line = line.rstrip('\n')
                        if line.strip():
                            yield self.loads(line)
                else:
                    doc_id = os.path.splitext(os.path.basename(filename))[0]
                    yield Document(fin.read(), doc_id=doc_id,
                                   language=self.language)

    def write(self, documents, path):
        if self.one_per_line:
            with open(path, 'w', encoding='utf-8') as fout:
                for doc in documents:
                    print(self.dumps(doc), file=fout)
            return
        if not os.path.exists(path):
            os.makedirs(path)
        for doc in documents:
            filename = os.path.join(path, str(doc.id) + self.extension)
            with open(filename, 'w', encoding='utf-8') as fout:
                fout.write(self.dumps(doc))


JSON_OPL = JsonFormat()
TEXT = TextFormat()
TEXT_OPL = TextFormat(one_per_line=True)

FORMATS = {fmt.name: fmt for fmt in [JSON_OPL, TEXT, TEXT_OPL]}
"formats by name"


def get_format(name):
    """
    Format with the given name (formats are passed through as they
    are)

    :raises ValueError: if there is no such format
    """
    if isinstance(name, DocumentFormat):
        return name
    fmt = FORMATS.get(name.strip().lower().replace('-', '_'))
    if fmt is None:
        raise ValueError('Unknown document format %s (try one of: %s)' %
                         (name, ', '.join(sorted(FORMATS))))
    return fmt
