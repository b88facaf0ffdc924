# License: BSD3

"""
Corpus management for the annotation source.

The treebank comes as a directory of Turtle files, one per document.
A file belongs to document `doc` if its name (without `.ttl`) is `doc`
or starts with `doc_`. Files can sit in a subdirectory named after the
corpus, or directly in the top directory; we look in that order.

As with the other readers, `Reader` gives you little more than
dictionaries from `DocKey` to files (or to triple streams).
"""

from glob import glob
import os

from .turtle import TripleStream


class AmbiguousSourceError(Exception):
    '''More than one source unit for a document'''
    def __init__(self, key, paths):
        self.key = key
        self.paths = paths
        Exception.__init__(self, 'several files for %s: %s' %
                           (key, ', '.join(paths)))


class DocKey(object):
    """
    Identity of a document in a merge run.

    :param corpus: corpus name (as in the base corpus, before any
        renaming)
    :type corpus: string

    :param doc: document name
    :type doc: string
    """
    def __init__(self, corpus, doc):
        self.corpus = corpus
        self.doc = doc

    def __str__(self):
        return '%s/%s' % (self.corpus, self.doc)

    def __repr__(self):
        return 'DocKey(%r, %r)' % (self.corpus, self.doc)

    def _tuple(self):
        """
        For internal use by __hash__, __eq__, etc
        """
        return (self.corpus, self.doc)

    def __hash__(self):
        return hash(self._tuple())

    def __eq__(self, other):
        return self._tuple() == other._tuple()

    def __ne__(self, other):
        return not self == other

    def __lt__(self, other):
        return self._tuple() < other._tuple()


def _is_unit_for(path, doc):
    "True if the file is a Turtle unit for the document"
    stem, ext = os.path.splitext(os.path.basename(path))
    return ext == '.ttl' and (stem == doc or stem.startswith(doc + '_'))


class Reader(object):
    """
    Turtle units of a treebank directory

    :param rootdir: the top directory of the treebank
    :type rootdir: str

    .. code-block:: python

        reader = Reader(ttl_dir)
        units = reader.units(keys)
        forests = dict((k, assemble(group_by_subject(v), k))
                       for k, v in units.items())
    """
    def __init__(self, rootdir):
        self.rootdir = rootdir

    def find(self, key):
        """
        Path of the unit for a document, or None if there is none.

        Raises `AmbiguousSourceError` if more than one file matches in
        the first directory that has any
        """
        for subdir in [os.path.join(self.rootdir, key.corpus), self.rootdir]:
            if not os.path.isdir(subdir):
                continue
            matches = sorted(x for x in glob(os.path.join(subdir, '*.ttl'))
                             if _is_unit_for(x, key.doc))
            if len(matches) > 1:
                raise AmbiguousSourceError(key, matches)
            elif matches:
                return matches[0]
        return None

    def files(self, keys):
        """
        Dictionary from `DocKey` to Turtle file, for those of the given
        documents that have one
        """
        found = {}
        for key in keys:
            path = self.find(key)
            if path is not None:
                found[key] = path
        return found

    def units(self, keys):
        """
        Dictionary from `DocKey` to `TripleStream`, for those of the
        given documents that have a unit
        """
        return dict((k, TripleStream.from_file(v))
                    for k, v in self.files(keys).items())
