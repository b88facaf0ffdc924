# -*- coding: utf-8 -*-
#
# License: BSD3

"""
Streaming reader for the subset of Turtle_ used by treebank exports.

The function you most likely want is `TripleStream.from_file`, which
gives a restartable, lazy sequence of `Triple`. We tokenise the whole
unit with a regular expression lexer, but only parse (and yield) one
statement at a time.

Supported: `@prefix`/`@base` (and their SPARQL-style spellings),
IRIs, prefixed names, blank node labels, `a`, string literals (with
language tags or datatypes), numbers, booleans, `;` and `,` lists.
SPARQL-style `PREFIX` and `BASE` are case-insensitive. Anything outside
this subset, such as blank node property lists (`[ ... ]`) or
collections, fails with a `ParseError` naming the offending token.

.. _Turtle: https://www.w3.org/TR/turtle/
"""

from collections import OrderedDict, namedtuple
from urllib.parse import urljoin
import codecs
import re

from funcparserlib.lexer import make_tokenizer, LexerError, Token
from funcparserlib.parser import (a, some, many, maybe, skip, finished,
                                  NoParseError)

from .errors import ParseError


RDF = 'http://www.w3.org/1999/02/22-rdf-syntax-ns#'
XSD = 'http://www.w3.org/2001/XMLSchema#'
NIF = 'http://persistence.uni-leipzig.org/nlp2rdf/ontologies/nif-core#'
CONLL = 'http://ufal.mff.cuni.cz/conll2009-st/task-description.html#'
POWLA = 'http://purl.org/powla/powla.owl#'

RDF_TYPE = RDF + 'type'


# ---------------------------------------------------------------------
# terms
# ---------------------------------------------------------------------

class Iri(str):
    "An absolute (or at least resolved) IRI"
    def __repr__(self):
        return '<%s>' % self


class BNode(str):
    "A blank node label, scoped to its unit"
    def __repr__(self):
        return '_:%s' % self


class Literal(namedtuple('Literal', 'value lang datatype')):
    "A literal with optional language tag or datatype IRI"
    def __str__(self):
        return self.value


def is_iri(term):
    "True if the term is an IRI (as opposed to a literal or blank node)"
    return isinstance(term, Iri)


Triple = namedtuple('Triple', 'subject predicate object')


# ---------------------------------------------------------------------
# lexing
# ---------------------------------------------------------------------

_TOKEN_SPECS = [
    ('space', (r'[ \t\r\n]+',)),
    ('comment', (r'#[^\r\n]*',)),
    ('iri', (r'<[^<>"{}|^`\\\x00-\x20]*>',)),
    ('string', (r'"""(?:[^"\\]|\\.|"(?!""))*"""', re.DOTALL)),
    ('string', (r"'''(?:[^'\\]|\\.|'(?!''))*'''", re.DOTALL)),
    ('string', (r'"(?:[^"\\\r\n]|\\.)*"',)),
    ('string', (r"'(?:[^'\\\r\n]|\\.)*'",)),
    ('directive', (r'@(?:prefix|base)\b',)),
    ('langtag', (r'@[A-Za-z]+(?:-[A-Za-z0-9]+)*',)),
    ('dtype', (r'\^\^',)),
    ('bnode', (r'_:[\w](?:[\w.-]*[\w-])?',)),
    ('pname', (r'(?:[A-Za-z][\w.-]*)?:(?:[\w%-](?:[\w.:%-]*[\w:%-])?)?',)),
    ('number', (r'[+-]?(?:\d+\.\d+|\.\d+|\d+)(?:[eE][+-]?\d+)?',)),
    ('name', (r'[A-Za-z]+',)),
    ('op', (r'[.;,\[\]()]',)),
]

_USELESS = ['space', 'comment']

_tokenize = make_tokenizer(_TOKEN_SPECS)

_ESCAPES = {
    't': '\t', 'b': '\b', 'n': '\n', 'r': '\r', 'f': '\f',
    '"': '"', "'": "'", '\\': '\\',
}

_ESCAPE_RE = re.compile(r'\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)', re.DOTALL)


def _unescape(text):
    """
    Interpret Turtle string escapes
    """
    def sub(match):
        esc = match.group(1)
        if esc[0] in 'uU' and len(esc) > 1:
            return chr(int(esc[1:], 16))
        elif esc in _ESCAPES:
            return _ESCAPES[esc]
        else:
            raise ValueError('bad escape sequence \\%s' % esc)
    return _ESCAPE_RE.sub(sub, text)


def _string_value(raw):
    "string token contents without quotes"
    quote_len = 3 if raw[:3] in ('"""', "'''") else 1
    return _unescape(raw[quote_len:-quote_len])


# ---------------------------------------------------------------------
# parsing (one statement at a time)
# ---------------------------------------------------------------------
#
# The parsers below produce "raw" terms, pairs of (kind, text), which
# only become `Iri` etc once we know the prefixes and base in force
# at that point in the unit (see `_Resolver`).

def _kind(kind):
    "parser for a single token of the given type"
    return some(lambda t: t.type == kind)


def _op(value):
    return skip(a(Token('op', value)))


def _keyword(word):
    "case-insensitive keyword"
    return some(lambda t: t.type == 'name' and t.value.upper() == word)


def _raw(kind):
    return lambda t: (kind, t.value)


def _cons(pair):
    head, tail = pair
    return [head] + [x for x in tail if x is not None]


_iriref = _kind('iri') >> (lambda t: ('iri', t.value[1:-1]))
_pname = _kind('pname') >> _raw('pname')
_bnode = _kind('bnode') >> (lambda t: ('bnode', t.value[2:]))
_keyword_a = a(Token('name', 'a')) >> (lambda _: ('iri', RDF_TYPE))
_boolean = (a(Token('name', 'true')) | a(Token('name', 'false'))) >>\
    (lambda t: ('literal', (t.value, None, ('iri', XSD + 'boolean'))))
_number = _kind('number') >>\
    (lambda t: ('literal', (t.value, None, ('number', t.value))))
_string = _kind('string') + maybe((_kind('langtag') >> _raw('lang')) |
                                  (skip(_kind('dtype')) + (_iriref | _pname)))


def _mk_literal(parts):
    token, suffix = parts
    lang = None
    dtype = None
    if suffix is not None and suffix[0] == 'lang':
        lang = suffix[1][1:]
    elif suffix is not None:
        dtype = suffix
    return ('literal', (_string_value(token.value), lang, dtype))


_literal = (_string >> _mk_literal) | _number | _boolean

_subject = _iriref | _pname | _bnode
_verb = _iriref | _pname | _keyword_a
_object = _iriref | _pname | _bnode | _literal
_object_list = _object + many(_op(',') + _object) >> _cons
_predicate_object = _verb + _object_list >> tuple
_predicate_object_list = _predicate_object +\
    many(_op(';') + maybe(_predicate_object)) >> _cons

_triples = _subject + _predicate_object_list >>\
    (lambda x: ('triples', x[0], x[1]))

_prefix_decl = (skip(a(Token('directive', '@prefix'))) + _pname + _iriref +
                _op('.')) |\
    (skip(_keyword('PREFIX')) + _pname + _iriref)
_base_decl = (skip(a(Token('directive', '@base'))) + _iriref + _op('.')) |\
    (skip(_keyword('BASE')) + _iriref)

_statement = ((_prefix_decl >> (lambda x: ('prefix', x[0], x[1]))) |
              (_base_decl >> (lambda x: ('base', x))) |
              (_triples + _op('.'))) + skip(finished)


def _is_sparql_directive(tokens):
    """
    SPARQL-style directives have no terminating dot, so we need to
    recognise where they end
    """
    if not tokens or tokens[0].type != 'name':
        return False
    head = tokens[0].value.upper()
    return (head == 'PREFIX' and len(tokens) == 3) or\
        (head == 'BASE' and len(tokens) == 2)


def _split_statements(tokens):
    """
    Group a token stream into statements (lists of tokens), each ending
    with a `.` (or being a SPARQL-style directive)
    """
    current = []
    for tok in tokens:
        if tok.type in _USELESS:
            continue
        current.append(tok)
        if tok == Token('op', '.') or _is_sparql_directive(current):
            yield current
            current = []
    if current:
        yield current


class _Resolver(object):
    """
    Prefixes and base IRI in force while reading a unit
    """
    def __init__(self, unit):
        self.unit = unit
        self.base = None
        self.prefixes = {}

    def iri(self, raw, where):
        "resolve a raw IRI or prefixed name"
        kind, text = raw
        if kind == 'iri':
            return Iri(urljoin(self.base, text) if self.base else text)
        prefix, local = text.split(':', 1)
        if prefix not in self.prefixes:
            raise ParseError(self.unit, where[0], where[1],
                             'undeclared prefix %r' % prefix)
        return Iri(self.prefixes[prefix] + local)

    def term(self, raw, where):
        "resolve any raw term"
        kind, text = raw
        if kind in ('iri', 'pname'):
            return self.iri(raw, where)
        elif kind == 'bnode':
            return BNode(text)
        value, lang, dtype = text
        if dtype is not None and dtype[0] == 'number':
            dtype = Iri(XSD + ('double' if 'e' in value.lower() else
                               'decimal' if '.' in value else 'integer'))
        elif dtype is not None:
            dtype = self.iri(dtype, where)
        return Literal(value, lang, dtype)


class TripleStream(object):
    """
    Lazy, restartable sequence of triples from one annotation source
    unit (usually one file per document).

    Each call to `iter()` starts a fresh pass over the unit; a stream
    is never re-entered.

    :param unit_id: identifier used in error messages
    :param read: zero-argument function returning the unit's text
    """
    def __init__(self, unit_id, read):
        self.unit_id = unit_id
        self._read = read

    @classmethod
    def from_file(cls, path, unit_id=None):
        "stream for a Turtle file (UTF-8)"
        def read():
            with codecs.open(path, 'r', 'utf-8') as stream:
                return stream.read()
        return cls(unit_id or path, read)

    @classmethod
    def from_string(cls, text, unit_id='<string>'):
        "stream for Turtle text already in memory"
        return cls(unit_id, lambda: text)

    def __iter__(self):
        resolver = _Resolver(self.unit_id)
        tokens = _tokenize(self._read())
        try:
            for stmt in _split_statements(tokens):
                for triple in self._statement(stmt, resolver):
                    yield triple
        except LexerError as err:
            line, col = err.place
            raise ParseError(self.unit_id, line, col,
                             'cannot tokenize: %r' % err.msg)

    def _statement(self, tokens, resolver):
        """
        Parse a single statement, updating prefixes and base, and
        return the triples it contains
        """
        try:
            parsed = _statement.parse(tokens)
        except NoParseError as err:
            pos = min(err.state.max, len(tokens) - 1)
            line, col = tokens[pos].start
            found = tokens[pos].value
            if err.state.max >= len(tokens) and tokens[-1].value != '.':
                msg = 'unexpected end of input (missing "."?)'
            else:
                msg = 'unexpected %r' % found
            raise ParseError(self.unit_id, line, col, msg)
        except ValueError as err:
            line, col = tokens[0].start
            raise ParseError(self.unit_id, line, col, str(err))
        where = tokens[0].start
        kind = parsed[0]
        if kind == 'prefix':
            prefix = parsed[1][1][:-1]
            resolver.prefixes[prefix] = resolver.iri(parsed[2], where)
            return []
        elif kind == 'base':
            resolver.base = resolver.iri(parsed[1], where)
            return []
        subject = resolver.term(parsed[1], where)
        triples = []
        for verb, objects in parsed[2]:
            predicate = resolver.iri(verb, where)
            triples.extend(Triple(subject, predicate,
                                  resolver.term(obj, where))
                           for obj in objects)
        return triples


def group_by_subject(triples):
    """
    Subject to list of `(predicate, object)` pairs, both subjects
    and pairs in the order we first see them
    """
    grouped = OrderedDict()
    for triple in triples:
        grouped.setdefault(triple.subject, []).append((triple.predicate,
                                                       triple.object))
    return grouped
