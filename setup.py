"""
treegraft setup: treegraft merges syntax trees from a Turtle treebank
into ANNIS corpora
"""

from setuptools import setup, find_packages
import glob
import os

REQS = [
    'funcparserlib',
    'pydot',
    'python-graph-core',
    'frozendict',
    'tabulate',
    'nltk >= 3.0.0',
    'toml',
]


setup(name='treegraft',
      version='0.1',
      author='Eric Kow',
      author_email='eric@erickow.com',
      packages=find_packages(include=['treegraft', 'treegraft.*']),
      scripts=[f for f in glob.glob('scripts/*') if not os.path.isdir(f)],
      install_requires=REQS,
      extras_require={'test': ['pytest']})
