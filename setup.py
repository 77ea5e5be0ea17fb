"""
strata setup: strata is a library for enriching text documents with
layers of typed annotations, and running annotators over corpora
"""

from setuptools import setup, find_packages
import glob
import os

REQS = [
    'pydot',
    'python-graph-core',
    'frozendict',
    'tabulate',
    'nltk >= 3.0.0',
    'pandas >= 0.17',
    'joblib',
]


setup(name='strata',
      version='0.1',
      author='Eric Kow',
      author_email='eric@erickow.com',
      packages=find_packages(),
      scripts=[f for f in glob.glob('scripts/*') if not os.path.isdir(f)],
      install_requires=REQS,
      extras_require={'test': ['pytest']})
