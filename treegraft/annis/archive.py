# License: BSD3

"""
Zip archives of ANNIS corpora.

An archive holds one `<corpus>.graphml` per corpus at its top level,
plus any linked files (eg. audio, stylesheets) under `<corpus>/`.
"""

from collections import namedtuple
import os
import posixpath
import sys
import tempfile
import zipfile
from urllib.parse import unquote

from .graphml import read_graphml, write_graphml
from ..storage import MEMORY


class LoadedCorpus(namedtuple('LoadedCorpus',
                              'name graph config linked_files')):
    """
    A corpus read from an archive.

    `linked_files` is a dict from file name (relative to the corpus
    directory of the archive) to contents
    """
    def close(self):
        "release the graph storage"
        self.graph.close()


def _is_corpus_entry(name):
    "top-level GraphML file"
    return '/' not in name and name.endswith('.graphml')


def _linked_files(archive, corpus):
    prefix = corpus + '/'
    return dict((x[len(prefix):], archive.read(x))
                for x in archive.namelist()
                if x.startswith(prefix) and not x.endswith('/'))


def load_corpora(zip_path, storage=MEMORY, verbose=False):
    """
    Read every corpus in an archive, one at a time.

    The graphs are not closed for you; call `LoadedCorpus.close` once
    you are done with one (this matters with disk storage)

    :rtype: iterator of `LoadedCorpus`
    """
    with zipfile.ZipFile(zip_path) as archive:
        entries = sorted(x for x in archive.namelist() if _is_corpus_entry(x))
        for entry in entries:
            if verbose:
                print('Loading %s from %s' % (entry, zip_path),
                      file=sys.stderr)
            with archive.open(entry) as stream:
                graph, config = read_graphml(stream, storage=storage)
            stem = posixpath.splitext(entry)[0]
            try:
                name = unquote(graph.corpus_name())
            except Exception:
                graph.close()
                raise
            yield LoadedCorpus(name=name,
                               graph=graph,
                               config=config,
                               linked_files=_linked_files(archive, stem))


class CorpusWriter(object):
    """
    Archive under construction. Corpora are added to a temporary file
    in the same directory as the target, which only replaces the target
    on `finish`; if we never get there, the target is left alone.

    .. code-block:: python

        writer = CorpusWriter('merged.zip')
        for corpus in corpora:
            writer.write_corpus(corpus.name, corpus.graph, corpus.config)
        writer.finish()
    """
    def __init__(self, path):
        self.path = path
        self.corpus_count = 0
        tdir = os.path.dirname(os.path.abspath(path))
        fd, self._tmp_path = tempfile.mkstemp(prefix='.treegraft-',
                                              suffix='.zip', dir=tdir)
        os.close(fd)
        self._zip = zipfile.ZipFile(self._tmp_path, 'w',
                                    zipfile.ZIP_DEFLATED)

    def write_corpus(self, name, graph, config, linked_files=None,
                     rename=None):
        """
        Add a corpus as `<name>.graphml` plus its linked files under
        `<name>/`

        :param rename: node name mapping (see `treegraft.rename`)
        """
        with self._zip.open(name + '.graphml', 'w') as stream:
            write_graphml(graph, stream, config=config, rename=rename)
        for fname, contents in sorted((linked_files or {}).items()):
            self._zip.writestr(posixpath.join(name, fname), contents)
        self.corpus_count += 1

    def finish(self):
        "move the archive into place"
        self._zip.close()
        os.replace(self._tmp_path, self.path)

    def abort(self):
        "throw the archive away"
        self._zip.close()
        if os.path.exists(self._tmp_path):
            os.remove(self._tmp_path)
