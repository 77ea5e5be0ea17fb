# Author: Eric Kow
# License: BSD3
# pylint: disable=missing-docstring, invalid-name

"""
Tests for the strata-util subcommands
"""

import argparse
import os
import shutil
import tempfile
import unittest

import pandas as pd

import strata.corpus
from strata.annotation import Document
from strata.corpus.formats import JSON_OPL
from strata.graph import DotGraph
from strata.types import (AnnotationType, AttributeType, DEPENDENCY,
                          RelationType, SENTENCE, TOKEN)
from strata.util import add_subcommand, parse_type_list

from . import SUBCOMMAND_SECTIONS, SUBCOMMANDS, annotate, count, typelist
from .args import safe_filename, write_dot_graph


def mk_parser():
    parser = argparse.ArgumentParser()
    subparsers = parser.add_subparsers()
    for module in SUBCOMMANDS:
        module.config_argparser(add_subcommand(subparsers, module))
    return parser


class UtilTest(unittest.TestCase):

    def test_parse_type_list(self):
        self.assertEqual([TOKEN, SENTENCE],
                         parse_type_list(['token, sentence']))
        fresh = parse_type_list(['test_cmd_fresh'])
        self.assertEqual([AnnotationType.value_of('TEST_CMD_FRESH')], fresh)
        rel = RelationType.create('TEST_CMD_REL')
        self.assertEqual([rel, TOKEN],
                         parse_type_list(['relation.test_cmd_rel', 'TOKEN']))
        self.assertEqual([], parse_type_list([' , ']))

    def test_sections(self):
        self.assertEqual([m for _, s in SUBCOMMAND_SECTIONS for m in s],
                         SUBCOMMANDS)

    def test_argparser(self):
        args = mk_parser().parse_args(['annotate', 'some/path', '-t',
                                       'token', '-j', '2'])
        self.assertEqual(annotate.main, args.func)
        self.assertEqual(['token'], args.types)
        self.assertEqual(2, args.workers)
        self.assertEqual('json_opl', args.format)
        args = mk_parser().parse_args(['types', '--family', 'relation'])
        self.assertEqual(typelist.main, args.func)


class ReportTest(unittest.TestCase):

    def test_type_table(self):
        AttributeType.create('TEST_CMD_ATTR', int)
        table = typelist.type_table(['attribute'])
        self.assertIn('TEST_CMD_ATTR', table)
        self.assertIn('int', table)
        self.assertNotIn('SENTENCE', table)
        self.assertIn('INDEX', typelist.type_table(['annotation']))

    def test_count_report(self):
        counts = pd.DataFrame([{'TOKEN': 4, 'SENTENCE': 1},
                               {'TOKEN': 2, 'SENTENCE': 1}],
                              index=['a', 'b'])
        full = count.report(counts)
        self.assertIn('total', full)
        self.assertIn('3.00', full)
        summary = count.report(counts, summary=True)
        self.assertNotIn('\na ', summary)
        self.assertIn('mean', summary)


class AnnotateTest(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix='strata-test-')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, True)

    def test_annotate(self):
        inputs = os.path.join(self.tmpdir, 'in.json')
        output = os.path.join(self.tmpdir, 'out')
        JSON_OPL.write([Document('One sentence. Two.', doc_id='x')], inputs)
        args = mk_parser().parse_args(['annotate', inputs, '-o', output,
                                       '-q', '-j', '1'])
        args.func(args)
        docs = list(strata.corpus.read(output))
        self.assertEqual(['x'], [d.id for d in docs])
        self.assertTrue(docs[0].is_completed(SENTENCE))
        self.assertEqual(2, len(docs[0].sentences()))


class DotGraphOutputTest(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix='strata-test-')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, True)

    def mk_graph(self, doc_id):
        doc = Document('cats purr', doc_id=doc_id)
        cats = doc.create_annotation(TOKEN, 0, 4)
        purr = doc.create_annotation(TOKEN, 5, 9)
        cats.add_relation(DEPENDENCY, purr, 'nsubj')
        return DotGraph(doc.relation_graph())

    def test_safe_filename(self):
        self.assertEqual('doc-1.a', safe_filename('doc-1.a'))
        self.assertEqual('_etc_passwd', safe_filename('/etc/passwd'))
        self.assertEqual('_escape', safe_filename('../escape'))
        self.assertEqual('a__rm_-rf___', safe_filename('a; rm -rf ~;'))
        self.assertEqual('_', safe_filename('..'))
        self.assertEqual('42', safe_filename(42))

    def test_hostile_id(self):
        marker = os.path.join(self.tmpdir, 'pwned')
        doc_id = 'a; touch %s; echo ' % marker
        dot_file = write_dot_graph(doc_id, self.tmpdir,
                                   self.mk_graph(doc_id),
                                   run_graphviz=True)
        self.assertFalse(os.path.exists(marker))
        self.assertEqual(os.path.abspath(self.tmpdir),
                         os.path.dirname(os.path.abspath(dot_file)))
        with open(dot_file, encoding='utf-8') as fin:
            self.assertIn('nsubj', fin.read())

    def test_path_in_id(self):
        outdir = os.path.join(self.tmpdir, 'out')
        os.makedirs(outdir)
        dot_file = write_dot_graph('../../escape', outdir,
                                   self.mk_graph('../../escape'),
                                   run_graphviz=False)
        self.assertEqual(['_.._escape.dot'], os.listdir(outdir))
        self.assertEqual(os.path.join(outdir, '_.._escape.dot'), dot_file)
