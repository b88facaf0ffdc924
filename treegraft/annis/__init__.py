# License: BSD3

"""
Reading and writing ANNIS corpora (GraphML inside zip archives)
"""

from .archive import CorpusWriter, LoadedCorpus, load_corpora
from .graphml import read_graphml, write_graphml
