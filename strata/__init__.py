"""
The strata library provides a framework for progressively enriching
text documents with typed, positional annotations (tokens, sentences,
entities, dependency relations...) produced by pluggable annotators.

It has a three-layer structure:

* base layer (types, documents and annotations, graphs)
* processing layer (annotators, dependency resolution, pipelines)
* corpus layer (collections of documents and how they are held)

Layers
~~~~~~
Working our way up the tower, the base layer provides:

* types (strata.types): the things annotators produce. Annotation,
  attribute and relation types are interned symbols created on
  demand; annotation types form a hierarchy rooted at ROOT and come
  in automatic/gold standard pairs

* annotation (strata.annotation): documents, their annotations, spans
  and relations. Annotations are indexed by span (strata.spanindex),
  so that we can quickly ask which annotations overlap, contain or
  are contained in some stretch of text

* graph (strata.graph): directed graph view of the relations between
  the annotations of a document, supporting shortest path and subtree
  queries

On top of this, the processing layer (strata.processing) works out
which annotators must run (and in which order) for a document to have
some types of annotation, and runs them over whole corpora with a pool
of worker threads.

Finally, the corpus layer (strata.corpus) offers collections of
documents held in memory, streamed, spilled to disk, or split into
partitions processed by separate worker processes ::

                corpus                          [corpus layer]
                  |
                  v
              processing  ---> external         [processing layer]
                  |           (annotators)
        +---------+---------+
        |         |         |
        v         v         v
      types -> annotation <- graph              [base layer]
"""
