# License: BSD3

"""
Conditions that can stop a merge.

Everything here derives from `TreegraftError`. The pipeline treats all
of them as fatal, except that `ParseError` and `AlignmentError` may be
downgraded to "skip this document" (see `treegraft.pipeline`).

Each exception keeps the offending document/IRI/node as attributes so
that callers can report them without parsing the message.
"""

# pylint: disable=too-many-arguments


class TreegraftError(Exception):
    """Base class for merge errors"""
    def __init__(self, msg):
        Exception.__init__(self, msg)


# ---------------------------------------------------------------------
# annotation source
# ---------------------------------------------------------------------

class ParseError(TreegraftError):
    """
    Malformed syntax in an annotation source unit.

    :param unit: identifier of the source unit (usually its path)
    :param line: 1-based line of the offending token (or None)
    :param column: 1-based column of the offending token (or None)
    """
    def __init__(self, unit, line, column, msg):
        self.unit = unit
        self.line = line
        self.column = column
        self.msg = msg
        where = unit if line is None else '%s:%d:%d' % (unit, line, column)
        TreegraftError.__init__(self, '%s: %s' % (where, msg))


# ---------------------------------------------------------------------
# tree assembly
# ---------------------------------------------------------------------

class TreeError(TreegraftError):
    """The triples do not describe a well-formed forest"""
    def __init__(self, key, msg):
        self.key = key
        TreegraftError.__init__(self, '%s: %s' % (key, msg))


class DanglingReferenceError(TreeError):
    """A dominance edge points to a subject the unit never describes"""
    def __init__(self, key, source, target):
        self.source = source
        self.target = target
        TreeError.__init__(self, key, 'node %s refers to unknown node %s' %
                           (source, target))


class MultipleParentsError(TreeError):
    """A node has more than one incoming dominance edge"""
    def __init__(self, key, node, parents):
        self.node = node
        self.parents = parents
        TreeError.__init__(self, key, 'node %s has more than one parent: %s' %
                           (node, ', '.join(parents)))


class CycleError(TreeError):
    """Following dominance edges leads back to where we started"""
    def __init__(self, key, cycle):
        self.cycle = cycle
        TreeError.__init__(self, key, 'dominance cycle: %s' %
                           ' -> '.join(cycle))


class UnorderedTerminalError(TreeError):
    """A word we cannot place in the document's word order"""
    def __init__(self, key, node):
        self.node = node
        TreeError.__init__(self, key,
                           'word %s is not part of the word order' % node)


class DuplicateLocalIdError(TreeError):
    """Two constituents would be grafted under the same name"""
    def __init__(self, key, local, iris):
        self.local = local
        self.iris = iris
        TreeError.__init__(self, key, 'nodes %s share the local id %s' %
                           (' and '.join(iris), local))


# ---------------------------------------------------------------------
# alignment
# ---------------------------------------------------------------------

class AlignmentError(TreegraftError):
    """Foreign references do not match the base corpus tokens"""
    pass


class TokenOrdinalOutOfRangeError(AlignmentError):
    """Token ordinal beyond the number of tokens in the document"""
    def __init__(self, corpus, doc, ordinal, count):
        self.corpus = corpus
        self.doc = doc
        self.ordinal = ordinal
        self.count = count
        AlignmentError.__init__(
            self, 'token %d is out of range for %s/%s (%d tokens)' %
            (ordinal, corpus, doc, count))


class UnresolvedTerminalError(AlignmentError):
    """A terminal with no counterpart in the base corpus"""
    def __init__(self, iri, corpus, doc, ordinal, reason=None):
        self.iri = iri
        self.corpus = corpus
        self.doc = doc
        self.ordinal = ordinal
        msg = 'terminal %s (%s/%s, token %d) has no counterpart in the '\
            'base corpus' % (iri, corpus, doc, ordinal)
        if reason:
            msg += ': ' + reason
        AlignmentError.__init__(self, msg)


class AnnotationMismatchError(AlignmentError):
    """A terminal and its token disagree on a shared annotation"""
    def __init__(self, iri, node_name, anno_name, expected, actual):
        self.iri = iri
        self.node_name = node_name
        self.anno_name = anno_name
        self.expected = expected
        self.actual = actual
        AlignmentError.__init__(
            self, "sanity check failed: %s for %s and %s doesn't match: "
            "'%s' != '%s'" % (anno_name, iri, node_name,
                              expected or '', actual or ''))


# ---------------------------------------------------------------------
# configuration
# ---------------------------------------------------------------------

class ConfigError(TreegraftError):
    """Invalid user settings"""
    pass


class InvalidPatternError(ConfigError):
    """Rename pattern without a placeholder"""
    def __init__(self, pattern, placeholder):
        self.pattern = pattern
        ConfigError.__init__(self, 'pattern %r must contain placeholder %r' %
                             (pattern, placeholder))


class InvalidNameError(ConfigError):
    """Unusable layer or annotation name"""
    def __init__(self, what, name):
        self.what = what
        self.name = name
        ConfigError.__init__(self, 'invalid %s name: %r' % (what, name))


# ---------------------------------------------------------------------
# merging
# ---------------------------------------------------------------------

class MergeError(TreegraftError):
    """
    Node identity clash while grafting. Should not happen given fresh
    identity allocation, but we check rather than assume.
    """
    def __init__(self, node, msg=None):
        self.node = node
        TreegraftError.__init__(self, msg or
                                'node %s already exists in the graph' % node)
