# License: BSD3

"""
Merging a whole archive, corpus by corpus and document by document.

For each corpus: build the token index, then for each document that
has a treebank unit, parse, assemble, resolve and merge. Once all
documents are done, the tree visualizer is added to the corpus
configuration and the corpus is written out (renamed if asked).

By default any error stops the run; with `on_error='skip'`, documents
with syntax or alignment problems are left out (nothing of them is
grafted) and listed in the summary instead.
"""

import sys

from tabulate import tabulate

from .align import REM_SANITY_KEYS, resolve
from .annis.archive import CorpusWriter, load_corpora
from .corpus import DocKey, Reader
from .errors import AlignmentError, ConfigError, ParseError
from .graph import split_doc_path
from .merge import MergeSettings, add_visualizer, merge
from .rename import corpus_renamer, rename as apply_pattern
from .storage import DISK, STORAGE_MODES
from .tokens import TOK_ANNO, TokenIndex
from .tree import REM_VOCABULARY, assemble
from .turtle import group_by_subject

ABORT = 'abort'
SKIP = 'skip'
ERROR_POLICIES = [ABORT, SKIP]


class Settings(object):
    """
    Everything a merge run needs to know

    :param merge: `MergeSettings` (defaults if None)
    :param rename: pattern for new corpus names (eg. `%c_treebank`), or
        None to keep them
    :param storage: `memory` or `disk`
    :param segmentation: segmentation whose nodes are the words of the
        treebank, or None for the base tokens
    :param sanity_keys: annotations to compare between words and
        tokens (empty to skip the check)
    :param vocabulary: predicates of the treebank (`TreeVocabulary`)
    :param on_error: `abort` or `skip`
    :param verbose: report progress on stderr
    """
    def __init__(self, merge=None, rename=None, storage=DISK,
                 segmentation=TOK_ANNO, sanity_keys=REM_SANITY_KEYS,
                 vocabulary=REM_VOCABULARY, on_error=ABORT, verbose=False):
        if rename is not None:
            apply_pattern('', rename)
        if storage not in STORAGE_MODES:
            raise ConfigError('unknown storage mode %r' % storage)
        if on_error not in ERROR_POLICIES:
            raise ConfigError('unknown error policy %r' % on_error)
        self.merge = merge or MergeSettings()
        self.rename = rename
        self.storage = storage
        self.segmentation = segmentation
        self.sanity_keys = sanity_keys
        self.vocabulary = vocabulary
        self.on_error = on_error
        self.verbose = verbose


class Summary(object):
    """
    What happened to each document of a run
    """
    def __init__(self):
        self.merged = []
        self.skipped = []
        self.missing = []

    def add_merged(self, key, graft):
        "document grafted"
        self.merged.append((key, graft))

    def add_skipped(self, key, err):
        "document left out because of an error"
        self.skipped.append((key, err))

    def add_missing(self, key):
        "document without a treebank unit"
        self.missing.append(key)

    def counts(self):
        "table of how many documents were merged, skipped and missing"
        rows = [['merged', len(self.merged)],
                ['skipped', len(self.skipped)],
                ['no treebank unit', len(self.missing)]]
        return tabulate(rows, headers=['documents', 'count'])

    def problems(self):
        "table of skipped documents with their errors"
        rows = [[str(k), type(e).__name__, str(e)] for k, e in self.skipped]
        return tabulate(rows, headers=['document', 'error', 'message'])

    def __str__(self):
        res = self.counts()
        if self.skipped:
            res += '\n\n' + self.problems()
        return res


def _progress(settings, msg, *args):
    if settings.verbose:
        print(msg % args, file=sys.stderr)


def merge_document(graph, index, key, stream, settings):
    """
    Graft the treebank unit of one document; return the `Graft`
    """
    grouped = group_by_subject(stream)
    forest = assemble(grouped, key, vocabulary=settings.vocabulary)
    resolved = resolve(forest, index, sanity_keys=settings.sanity_keys)
    return merge(graph, resolved, settings.merge)


def merge_corpus(corpus, reader, settings, summary):
    """
    Graft the treebank onto every document of a loaded corpus (in
    place), and add the tree visualizer to its configuration
    """
    graph = corpus.graph
    index = TokenIndex.build(graph, segmentation=settings.segmentation)
    keys = [DocKey(*split_doc_path(graph.node_name(x)))
            for x in graph.documents()]
    units = reader.units(keys)
    for counter, key in enumerate(keys, 1):
        if key not in units:
            _progress(settings, 'No treebank unit for %s, skipping', key)
            summary.add_missing(key)
            continue
        _progress(settings, 'Merging %s [%d/%d]', key, counter, len(keys))
        try:
            graft = merge_document(graph, index, key, units[key], settings)
        except (ParseError, AlignmentError) as err:
            if settings.on_error != SKIP:
                raise
            print('Skipping %s: %s' % (key, err), file=sys.stderr)
            summary.add_skipped(key, err)
            continue
        summary.add_merged(key, graft)
    add_visualizer(corpus.config, settings.merge,
                   segmentation=settings.segmentation)


def run(input_zip, ttl_dir, output_zip, settings):
    """
    Merge every corpus of an archive with its treebank and write the
    result; return the `Summary`.

    The output archive only appears if every corpus went through
    """
    reader = Reader(ttl_dir)
    summary = Summary()
    writer = CorpusWriter(output_zip)
    try:
        for corpus in load_corpora(input_zip, storage=settings.storage,
                                   verbose=settings.verbose):
            try:
                _progress(settings, 'Corpus %s', corpus.name)
                merge_corpus(corpus, reader, settings, summary)
                if settings.rename is None:
                    name = corpus.name
                    mapper = None
                else:
                    name = apply_pattern(corpus.name, settings.rename)
                    mapper = corpus_renamer(corpus.name, name)
                writer.write_corpus(name, corpus.graph, corpus.config,
                                    linked_files=corpus.linked_files,
                                    rename=mapper)
            finally:
                corpus.close()
    except Exception:
        writer.abort()
        raise
    writer.finish()
    return summary
