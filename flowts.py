#!/usr/bin/env python3
import os, sys, re, copy, bisect
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, Set

from ply import lex as plylex
from ply import yacc as plyyacc
from ply.lex import LexToken

# ============================================================
# Diagnostics
# ============================================================

@dataclass
class Source:
    path: str
    text: str

    @staticmethod
    def from_text(text: str, path: str = "<input>") -> "Source":
        return Source(path=path, text=text)

    def locate(self, pos: int) -> Tuple[int, int, str]:
        """1-based (line, column) of `pos` and the text of that line."""
        pos = max(0, min(pos, len(self.text)))
        start = self.text.rfind("\n", 0, pos) + 1
        end = self.text.find("\n", pos)
        if end < 0:
            end = len(self.text)
        return self.text.count("\n", 0, pos) + 1, pos - start + 1, self.text[start:end]

# ANSI colour per severity: (label, underline)
PALETTE = {
    "error": ("\033[1;31m", "\033[31m"),
    "warning": ("\033[1;33m", "\033[33m"),
}
GUTTER, HELP, RESET = "\033[1;34m", "\033[1;36m", "\033[0m"

@dataclass
class Diag:
    kind: str  # "error" | "warning"
    msg: str
    src: Source
    lexpos: int
    hint: Optional[str] = None

    def format(self, use_color: bool = True) -> str:
        line, col, code = self.src.locate(self.lexpos)
        label, mark = PALETTE[self.kind] if use_color else ("", "")
        gutter, help_, reset = (GUTTER, HELP, RESET) if use_color else ("", "", "")
        pad = " " * len(str(line))
        bar = f"{gutter}{pad} |{reset}"
        out = [
            f"{label}{self.kind}{reset}: {self.msg}",
            f"{gutter}{pad}-->{reset} {self.src.path}:{line}:{col}",
            bar,
            f"{gutter}{line} |{reset} {code}",
            f"{bar} {' ' * (col - 1)}{mark}^~~~{reset}",
        ]
        if self.hint:
            out += [bar, f"{bar} {help_}help:{reset} {self.hint}"]
        return "\n".join(out)

class ErrorSink:
    """Collects diagnostics for one file; errors mark the file as failed."""

    def __init__(self) -> None:
        self.errors: List[Diag] = []
        self.warnings: List[Diag] = []

    def error(self, msg: str, src: Source, lexpos: int, hint: Optional[str] = None):
        self.errors.append(Diag("error", msg, src, lexpos, hint))

    def warning(self, msg: str, src: Source, lexpos: int, hint: Optional[str] = None):
        self.warnings.append(Diag("warning", msg, src, lexpos, hint))

    def ok(self) -> bool:
        return not self.errors

    def dump(self, use_color: bool = True, file=None):
        file = file or sys.stderr
        for d in self.errors + self.warnings:
            print(d.format(use_color) + "\n", file=file)

class TransformError(Exception):
    """Fatal for the current file: unsupported node kind or declaration shape."""

    def __init__(self, msg: str, kind: Optional[str] = None, pos: int = 0, hint: Optional[str] = None):
        super().__init__(msg)
        self.msg = msg
        self.kind = kind
        self.pos = pos
        self.hint = hint

    def diag(self, src: Source) -> Diag:
        return Diag("error", self.msg, src, self.pos, self.hint)

class ParseError(TransformError):
    pass

# ============================================================
# Lexer
# ============================================================

reserved = {
    "import": "IMPORT",
    "export": "EXPORT",
    "default": "DEFAULT",
    "function": "FUNCTION",
    "class": "CLASS",
    "extends": "EXTENDS",
    "implements": "IMPLEMENTS",
    "return": "RETURN",
    "if": "IF",
    "else": "ELSE",
    "while": "WHILE",
    "throw": "THROW",
    "var": "VAR",
    "let": "LET",
    "const": "CONST",
    "new": "NEW",
    "this": "THIS",
    "true": "TRUE",
    "false": "FALSE",
    "null": "NULL",
    "typeof": "TYPEOF",
    "void": "VOID",
    "delete": "DELETE",
    "instanceof": "INSTANCEOF",
    "in": "IN",
    "async": "ASYNC",
    "await": "AWAIT",
    "static": "STATIC",

    # contextual: also usable as identifiers
    "type": "TYPE",
    "opaque": "OPAQUE",
    "declare": "DECLARE",
    "interface": "INTERFACE",
    "from": "FROM",
    "as": "AS",
}

tokens = (
    # literals & ids
    "NAME", "NUMBER", "STRING", "TEMPLATE",
    "TEMPLATE_HEAD", "TEMPLATE_MIDDLE", "TEMPLATE_TAIL",

    # punctuation
    "LPAREN", "RPAREN", "LBRACE", "RBRACE", "LBRACKET", "RBRACKET",
    "EXACT_LBRACE", "EXACT_RBRACE",
    "COMMA", "SEMI", "COLON", "DOT", "ELLIPSIS", "QUESTION", "QDOT",
    "FATARROW",

    # produced by TokenStream, never by the regex rules
    "ARROW_LPAREN", "BLOCK_LBRACE", "FUNCTION_EXPR", "RETURN_ARROW",

    # operators
    "ASSIGN", "ASSIGNOP",
    "PLUS", "MINUS", "TIMES", "DIVIDE", "MOD",
    "PLUSPLUS", "MINUSMINUS",
    "ANDAND", "OROR", "NULLISH", "BANG", "TILDE",
    "PIPE", "AMP", "XOR",
    "EQ", "NE", "SEQ", "SNE", "LT", "LE", "GT", "GE",
) + tuple(sorted(set(reserved.values())))

t_ignore = " \t\r"

# Multi-character operators/punctuation (must come before single-char)
def t_comment(t):
    r'//[^\n]*|/\*[\s\S]*?\*/'
    t.lexer.comments.append((t.lexpos, t.value))
    t.lexer.lineno += t.value.count("\n")

def t_TEMPLATE(t):
    r'`'
    end = scan_template(t.lexer.lexdata, t.lexpos)
    t.value = t.lexer.lexdata[t.lexpos:end]
    t.lexer.lexpos = end
    t.lexer.lineno += t.value.count("\n")
    return t

def t_ELLIPSIS(t):
    r'\.\.\.'
    return t

def t_NUMBER(t):
    r'0[xXbBoO][0-9a-fA-F_]+n?|(?:\d[\d_]*\.?\d*|\.\d+)(?:[eE][+-]?\d+)?n?'
    return t

def t_QDOT(t):
    r'\?\.(?!\d)'
    return t

def t_EXACT_LBRACE(t):
    r'\{\|'
    return t

def t_EXACT_RBRACE(t):
    r'\|\}'
    return t

def t_ASSIGNOP(t):
    r'(?:\+|-|\*|/|%|&&|\|\||\?\?|&|\||\^)='
    return t

def t_NULLISH(t):
    r'\?\?'
    return t

def t_SEQ(t):
    r'==='
    return t

def t_SNE(t):
    r'!=='
    return t

def t_FATARROW(t):
    r'=>'
    return t

def t_EQ(t):
    r'=='
    return t

def t_NE(t):
    r'!='
    return t

def t_LE(t):
    r'<='
    return t

def t_GE(t):
    r'>='
    return t

def t_PLUSPLUS(t):
    r'\+\+'
    return t

def t_MINUSMINUS(t):
    r'--'
    return t

def t_ANDAND(t):
    r'&&'
    return t

def t_OROR(t):
    r'\|\|'
    return t

def t_STRING(t):
    r'"(?:[^"\\\n]|\\.)*"|\'(?:[^\'\\\n]|\\.)*\''
    return t

def t_NAME(t):
    r'[A-Za-z_$][A-Za-z0-9_$]*'
    t.type = reserved.get(t.value, "NAME")
    return t

def t_newline(t):
    r'\n+'
    t.lexer.lineno += len(t.value)

# Single-character tokens
t_LPAREN   = r"\("
t_RPAREN   = r"\)"
t_LBRACE   = r"\{"
t_RBRACE   = r"\}"
t_LBRACKET = r"\["
t_RBRACKET = r"\]"
t_COMMA    = r","
t_SEMI     = r";"
t_COLON    = r":"
t_DOT      = r"\."
t_QUESTION = r"\?"
t_ASSIGN   = r"="
t_PLUS     = r"\+"
t_MINUS    = r"-"
t_TIMES    = r"\*"
t_DIVIDE   = r"/"
t_MOD      = r"%"
t_BANG     = r"!"
t_TILDE    = r"~"
t_PIPE     = r"\|"
t_AMP      = r"&"
t_XOR      = r"\^"
t_LT       = r"<"
t_GT       = r">"

def t_error(t):
    raise ParseError(f"unexpected character {t.value[0]!r}", "lex", t.lexpos)

# template literals nest (`a ${`b ${c}`}`), so TEMPLATE is scanned by hand

def scan_template(text: str, i: int, spans: Optional[list] = None) -> int:
    """Index just past the template literal opening at text[i].

    Each `${...}` body is recorded in `spans` as (start, end) offsets."""
    j = i + 1
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
        elif ch == "`":
            return j + 1
        elif text.startswith("${", j):
            end = scan_substitution(text, j + 2)
            if spans is not None:
                spans.append((j + 2, end))
            j = end + 1
        else:
            j += 1
    raise ParseError("unterminated template literal", "lex", i)

def scan_substitution(text: str, j: int) -> int:
    """Index of the '}' closing a `${` whose body starts at text[j]."""
    start, depth = j, 0
    while j < len(text):
        ch = text[j]
        if ch in "'\"":
            k = j + 1
            while k < len(text) and text[k] != ch:
                k += 2 if text[k] == "\\" else 1
            j = k + 1
        elif ch == "`":
            j = scan_template(text, j)
        elif text.startswith("//", j):
            k = text.find("\n", j)
            j = len(text) if k < 0 else k
        elif text.startswith("/*", j):
            k = text.find("*/", j + 2)
            j = len(text) if k < 0 else k + 2
        elif ch == "{":
            depth += 1
            j += 1
        elif ch == "}":
            if depth == 0:
                return j
            depth -= 1
            j += 1
        else:
            j += 1
    raise ParseError("unterminated template substitution", "lex", start - 2)

def split_template(raw: str) -> Tuple[List[str], List[Tuple[int, int]]]:
    """Split a template token into its literal parts and the offsets of
    its substitutions."""
    spans: List[Tuple[int, int]] = []
    scan_template(raw, 0, spans)
    quasis, prev = [], 1
    for start, end in spans:
        quasis.append(raw[prev:start - 2])
        prev = end + 1
    quasis.append(raw[prev:-1])
    return quasis, spans

CONTEXTUAL = {"TYPE", "OPAQUE", "DECLARE", "INTERFACE", "FROM", "AS"}

# tokens that may end a statement / may begin one (automatic semicolon insertion)
ASI_END = {
    "NAME", "NUMBER", "STRING", "TEMPLATE", "TEMPLATE_TAIL", "RPAREN", "RBRACKET", "RBRACE", "EXACT_RBRACE",
    "THIS", "NULL", "TRUE", "FALSE", "VOID", "PLUSPLUS", "MINUSMINUS", "GT", "TIMES",
} | CONTEXTUAL
ASI_START = {
    "NAME", "NUMBER", "STRING", "TEMPLATE", "TEMPLATE_HEAD", "IMPORT", "EXPORT", "FUNCTION", "CLASS", "RETURN",
    "IF", "WHILE", "THROW", "VAR", "LET", "CONST", "NEW", "THIS", "TRUE", "FALSE", "NULL",
    "TYPEOF", "VOID", "DELETE", "DECLARE", "ASYNC", "AWAIT", "TYPE", "OPAQUE", "INTERFACE",
    "PLUSPLUS", "MINUSMINUS", "BANG", "TILDE", "STATIC",
}
# a '{' after one of these opens a statement block
BLOCK_PREV = {"SEMI", "RPAREN", "RBRACE", "BLOCK_LBRACE", "ELSE", "FATARROW", "RETURN_ARROW"}
# a 'function' after one of these is a declaration
DECL_PREV = {"SEMI", "RBRACE", "BLOCK_LBRACE", "EXPORT", "DEFAULT", "DECLARE"}
# tokens that can close a type annotation
TYPE_END = {
    "NAME", "GT", "RBRACKET", "RBRACE", "EXACT_RBRACE", "RPAREN", "STRING", "NUMBER",
    "VOID", "NULL", "TRUE", "FALSE", "TIMES",
} | CONTEXTUAL

OPENERS = {
    "LPAREN": "RPAREN", "ARROW_LPAREN": "RPAREN", "LBRACKET": "RBRACKET",
    "LBRACE": "RBRACE", "BLOCK_LBRACE": "RBRACE", "EXACT_LBRACE": "EXACT_RBRACE",
}

class TokenStream:
    """Buffers the PLY token stream and resolves what LALR(1) cannot:
    arrow-function parentheses, statement blocks versus object braces,
    function declarations versus expressions, and semicolon insertion."""

    def __init__(self, lexer):
        self.comments: List[Tuple[int, str]] = []
        raw = self._lex(lexer)
        self.comments.extend(lexer.comments)
        self.comments.sort()
        self.toks = self._insert_semicolons(self._classify(raw))
        self.idx = 0
        self.lineno = 1
        self.lexpos = 0

    # ---- template literals
    def _lex(self, lexer, end: Optional[int] = None) -> List[LexToken]:
        out: List[LexToken] = []
        while True:
            tok = lexer.token()
            if tok is None or (end is not None and tok.lexpos >= end):
                return out
            if tok.type == "TEMPLATE":
                out.extend(self._expand_template(tok, lexer))
            else:
                out.append(tok)

    def _expand_template(self, tok: LexToken, lexer) -> List[LexToken]:
        """`a${x}b${y}c` becomes TEMPLATE_HEAD x TEMPLATE_MIDDLE y TEMPLATE_TAIL,
        with the substitutions lexed in place by a clone of `lexer`."""
        quasis, spans = split_template(tok.value)
        if not spans:
            return [tok]
        out = [self._piece("TEMPLATE_HEAD", quasis[0], tok, 0)]
        for k, (start, end) in enumerate(spans):
            sub = lexer.clone()
            sub.comments = []
            sub.input(lexer.lexdata)
            sub.lexpos = tok.lexpos + start
            sub.lineno = tok.lineno + tok.value.count("\n", 0, start)
            out.extend(self._lex(sub, tok.lexpos + end))
            self.comments.extend(sub.comments)
            kind = "TEMPLATE_TAIL" if k == len(spans) - 1 else "TEMPLATE_MIDDLE"
            out.append(self._piece(kind, quasis[k + 1], tok, end))
        return out

    @staticmethod
    def _piece(kind: str, text: str, tok: LexToken, offset: int) -> LexToken:
        piece = LexToken()
        piece.type = kind
        piece.value = text
        piece.lineno = tok.lineno + tok.value.count("\n", 0, offset)
        piece.lexpos = tok.lexpos + offset
        return piece

    # ---- matching brackets
    @staticmethod
    def _matches(raw: List[LexToken]) -> Dict[int, int]:
        match: Dict[int, int] = {}
        stack: List[int] = []
        for i, t in enumerate(raw):
            if t.type in OPENERS:
                stack.append(i)
            elif t.type in ("RPAREN", "RBRACKET", "RBRACE", "EXACT_RBRACE"):
                if stack and OPENERS[raw[stack[-1]].type] == t.type:
                    j = stack.pop()
                    match[j] = i
                    match[i] = j
        return match

    @staticmethod
    def _scan_annotation(raw: List[LexToken], start: int,
                         arrows: bool = True) -> Tuple[Optional[int], Optional[int]]:
        """Walk a type annotation starting at `start`.

        Returns (index of '=>' ending it, index of a '{' that opens a body).
        With `arrows` off a top-level '=>' belongs to the type."""
        depth = 0
        for k in range(start, len(raw)):
            ty = raw[k].type
            if ty in OPENERS or ty == "LT":
                if ty == "LBRACE" and depth == 0 and k > start and raw[k - 1].type in TYPE_END:
                    return None, k
                depth += 1
            elif ty in ("RPAREN", "RBRACKET", "RBRACE", "EXACT_RBRACE", "GT"):
                depth -= 1
                if depth < 0:
                    return None, None
            elif depth == 0 and ty == "FATARROW" and arrows:
                return k, None
            elif depth == 0 and ty in ("SEMI", "COMMA", "ASSIGN"):
                return None, None
        return None, None

    def _classify(self, raw: List[LexToken]) -> List[LexToken]:
        match = self._matches(raw)
        body_braces: Set[int] = set()
        for i, t in enumerate(raw):
            if t.type != "LPAREN" or i not in match:
                continue
            j = match[i]
            nxt = raw[j + 1].type if j + 1 < len(raw) else None
            header = self._after_function(raw, i)
            if nxt == "FATARROW" and not header:
                t.type = "ARROW_LPAREN"
            elif nxt == "COLON":
                arrow, body = self._scan_annotation(raw, j + 2, arrows=not header)
                if arrow is not None:
                    t.type = "ARROW_LPAREN"
                    raw[arrow].type = "RETURN_ARROW"
                elif body is not None:
                    body_braces.add(body)

        for i, t in enumerate(raw):
            prev = raw[i - 1] if i > 0 else None
            if t.type == "LBRACE":
                if prev is None or prev.type in BLOCK_PREV or i in body_braces:
                    t.type = "BLOCK_LBRACE"
            elif t.type == "FUNCTION":
                if prev is not None and prev.type == "ASYNC":
                    prev = raw[i - 2] if i > 1 else None
                starts_line = prev is not None and prev.type in ASI_END and t.lineno > self._end_line(prev)
                if not (prev is None or prev.type in DECL_PREV or starts_line):
                    t.type = "FUNCTION_EXPR"
        return raw

    @staticmethod
    def _after_function(raw: List[LexToken], i: int) -> bool:
        # `function name<T>(`
        k = i - 1
        if k >= 0 and raw[k].type == "GT":
            depth = 0
            while k >= 0:
                if raw[k].type == "GT":
                    depth += 1
                elif raw[k].type == "LT":
                    depth -= 1
                    if depth == 0:
                        break
                k -= 1
            k -= 1
        if k >= 0 and (raw[k].type == "NAME" or raw[k].type in CONTEXTUAL):
            k -= 1
        return k >= 0 and raw[k].type == "FUNCTION"

    @staticmethod
    def _end_line(tok: LexToken) -> int:
        if isinstance(tok.value, str):
            return tok.lineno + tok.value.count("\n")
        return tok.lineno

    @staticmethod
    def _semi(after: LexToken) -> LexToken:
        semi = LexToken()
        semi.type = "SEMI"
        semi.value = ";"
        semi.lineno = after.lineno
        semi.lexpos = after.lexpos + len(str(after.value))
        return semi

    @staticmethod
    def _closes_header(raw: List[LexToken], match: Dict[int, int], i: int) -> bool:
        # `)` ending an if/while condition never ends a statement
        if raw[i].type != "RPAREN" or i not in match:
            return False
        opener = match[i]
        return opener > 0 and raw[opener - 1].type in ("IF", "WHILE")

    def _insert_semicolons(self, raw: List[LexToken]) -> List[LexToken]:
        match = self._matches(raw)
        out: List[LexToken] = []
        for i, t in enumerate(raw):
            prev = out[-1] if out else None
            if prev is not None and prev.type != "SEMI":
                if t.type == "RBRACE":
                    opener = match.get(i)
                    if opener is not None and raw[opener].type == "BLOCK_LBRACE" \
                            and prev.type not in ("BLOCK_LBRACE", "COMMA"):
                        out.append(self._semi(prev))
                elif t.lineno > self._end_line(prev) and prev.type in ASI_END and t.type in ASI_START \
                        and not self._closes_header(raw, match, i - 1):
                    out.append(self._semi(prev))
            out.append(t)
        if out and out[-1].type != "SEMI":
            out.append(self._semi(out[-1]))
        return out

    # ---- interface expected by ply.yacc
    def token(self) -> Optional[LexToken]:
        if self.idx >= len(self.toks):
            return None
        tok = self.toks[self.idx]
        self.idx += 1
        self.lineno = tok.lineno
        self.lexpos = tok.lexpos
        return tok

# ============================================================
# AST
# ============================================================
#
# One node class for both dialects. `data` layouts:
#
#   names        ident (name) | qualified (left, name) | ts_qualified (left, name)
#   flow types   type_<prim> () | type_*_lit (raw) | type_nullable (inner)
#                type_array (elem) | type_tuple / type_union / type_intersection ([types])
#                type_object ([members], exact) | type_generic (id, targs)
#                type_function (tparams, [fn_param], rest, ret) | type_typeof (arg)
#                obj_prop (key, value, optional, variance, method)
#                obj_indexer (id, key, value, variance) | obj_spread (type)
#                fn_param (name, type, optional) | tparams ([tparam])
#                tparam (name, bound, default, variance) | targs ([types])
#                type_annotation (type) | iface_ext (id, targs)
#   ts types     ts_<prim> () | ts_literal (raw) | ts_array (elem)
#                ts_tuple / ts_union / ts_intersection ([types])
#                ts_type_literal ([members]) | ts_prop_sig (key, type, optional, readonly)
#                ts_method_sig (key, ts_function, optional)
#                ts_index_sig (name, key, value, readonly)
#                ts_mapped (name, constraint, value, readonly)
#                ts_function (tparams, [ts_param], rest, ret) | ts_param (name, type, optional)
#                ts_type_ref (entity, targs) | ts_typeof (entity) | ts_keyof (type)
#                ts_indexed (object, index) | ts_tparams ([ts_tparam])
#                ts_tparam (name, constraint, default) | ts_targs ([types])
#                ts_type_annotation (type) | ts_heritage (entity, targs)
#   expressions  this () | num / str (raw) | template ([quasis], [exprs])
#                bool (value) | null ()
#                array ([elems]) | spread (expr) | object ([props])
#                prop (key, value, computed, shorthand) | obj_method (key, function)
#                function (name, tparams, [param], ret, body, is_async, is_expr)
#                arrow (tparams, [param], ret, body, is_async)
#                param (binding, annot, optional, default, rest)
#                obj_pattern ([pattern_prop]) | pattern_prop (key, binding, default, rest)
#                call (callee, [args], optional) | new (callee, targs, args)
#                member (object, property, computed, optional)
#                unary (op, arg) | update (op, arg, prefix) | binary (op, left, right)
#                cond (test, cons, alt) | assign (op, target, value)
#                typecast (expr, annot) | ts_as (expr, type) | paren (expr)
#   statements   program ([stmts]) | block ([stmts]) | expr_stmt (expr)
#                var_decl (kind, [declarator]) | declarator (binding, annot, init)
#                return (expr) | throw (expr) | if (test, cons, alt) | while (test, body)
#                class (name, tparams, super, super_targs, [iface_ext], [members])
#                class_prop (key, annot, value, static, variance, optional)
#                class_method (key, function, static)
#                import (kind, [specifiers], source) | import_default (local)
#                import_ns (local) | import_spec (imported, local, kind)
#                export_named (decl, [export_spec], source, kind)
#                export_spec (local, exported) | export_default (decl)
#                export_all (alias, source)
#                type_alias (name, tparams, type, declare)
#                opaque_type (name, tparams, supertype, type, declare)
#                interface (name, tparams, [iface_ext], type_object, declare)
#                declare_var (kind, name, annot) | declare_function (name, annot)
#                declare_class (name, tparams, [iface_ext], type_object)
#                declare_export (decl, is_default)
#                ts_type_alias (name, tparams, type, declare)
#                ts_interface (name, tparams, [ts_heritage], [members], declare)
#                ts_declare_var (kind, name, annot)
#                ts_declare_function (name, tparams, [ts_param], rest, ret)
#                ts_declare_class (name, tparams, super, super_targs)

@dataclass
class Node:
    kind: str
    pos: int
    data: tuple
    comments: List[str] = field(default_factory=list)
    trailing: List[str] = field(default_factory=list)
    blank_before: bool = False

    def become(self, other: "Node") -> "Node":
        """Replace this node in place so parents keep their reference."""
        self.kind = other.kind
        self.data = other.data
        self.comments = self.comments + [c for c in other.comments if c not in self.comments]
        self.trailing = self.trailing + [c for c in other.trailing if c not in self.trailing]
        return self

def keep_comments(old: Node, new: Node) -> Node:
    if new is not old:
        new.comments = old.comments + new.comments
        new.trailing = old.trailing + new.trailing
    return new

# Helpers to build nodes
def N(kind, p, idx=1, *data):
    return Node(kind=kind, pos=p.lexpos(idx), data=data)

def mk(kind: str, pos: int, *data) -> Node:
    return Node(kind=kind, pos=pos, data=data)

def children(node: Node) -> List[Node]:
    out: List[Node] = []
    for d in node.data:
        if isinstance(d, Node):
            out.append(d)
        elif isinstance(d, (list, tuple)):
            out.extend(x for x in d if isinstance(x, Node))
    return out

def walk(node: Node):
    """Pre-order over every node reachable from `node`."""
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(children(n)))

PRIMITIVE_TYPES = {
    "any": "type_any",
    "mixed": "type_mixed",
    "empty": "type_empty",
    "string": "type_string",
    "number": "type_number",
    "boolean": "type_boolean",
    "bool": "type_boolean",
    "bigint": "type_bigint",
    "symbol": "type_symbol",
}

# ============================================================
# Parser (PLY)
# ============================================================

# Precedence - ordered from lowest to highest
precedence = (
    ('right', 'ASSIGN', 'ASSIGNOP'),
    ('right', 'QUESTION', 'COLON'),
    ('left', 'NULLISH'),
    ('left', 'OROR'),
    ('left', 'ANDAND'),
    ('left', 'PIPE'),
    ('left', 'XOR'),
    ('left', 'AMP'),
    ('left', 'EQ', 'NE', 'SEQ', 'SNE'),
    ('left', 'LT', 'LE', 'GT', 'GE', 'INSTANCEOF', 'IN'),
    ('left', 'PLUS', 'MINUS'),
    ('left', 'TIMES', 'DIVIDE', 'MOD'),
    ('right', 'UNARY'),
)

_parser = None

def get_parser():
    # tables depend only on the grammar, so one build serves every file
    global _parser
    if _parser is None:
        _parser = plyyacc.yacc(start="program", debug=False, write_tables=False,
                               errorlog=plyyacc.NullLogger())
    return _parser

def attach_parser(src: Source):
    lexer = plylex.lex(errorlog=plylex.NullLogger())
    lexer.comments = []
    lexer.input(src.text)
    stream = TokenStream(lexer)
    return stream, get_parser()

# Grammar

def p_program(p):
    """program : stmt_list"""
    p[0] = Node("program", 0, (p[1],))

def p_stmt_list(p):
    """stmt_list : stmt_list stmt
                 | empty"""
    if len(p) == 3:
        p[0] = p[1]
        if p[2] is not None:
            p[0].append(p[2])
    else:
        p[0] = []

def p_empty(p):
    """empty :"""
    p[0] = None

def p_stmt(p):
    """stmt : import_decl
            | export_decl
            | type_alias
            | opaque_type
            | interface_decl
            | declare_stmt
            | function_decl
            | class_decl
            | if_stmt
            | while_stmt
            | block"""
    p[0] = p[1]

def p_stmt_simple(p):
    """stmt : simple_stmt SEMI"""
    p[0] = p[1]

def p_stmt_empty(p):
    """stmt : SEMI"""
    p[0] = None

def p_simple_stmt(p):
    """simple_stmt : var_decl
                   | return_stmt
                   | throw_stmt
                   | expr_stmt"""
    p[0] = p[1]

def p_ident(p):
    """ident : NAME
             | TYPE
             | OPAQUE
             | DECLARE
             | INTERFACE
             | FROM
             | AS"""
    p[0] = p[1]

def p_prop_name(p):
    """prop_name : ident
                 | DEFAULT
                 | CLASS
                 | NEW
                 | DELETE
                 | TYPEOF
                 | VOID
                 | NULL
                 | TRUE
                 | FALSE
                 | IMPORT
                 | EXPORT
                 | IN
                 | IF
                 | ELSE
                 | RETURN
                 | THIS
                 | EXTENDS
                 | IMPLEMENTS
                 | VAR
                 | LET
                 | CONST
                 | WHILE
                 | THROW
                 | INSTANCEOF
                 | FUNCTION
                 | FUNCTION_EXPR
                 | AWAIT"""
    p[0] = p[1]

# ---- imports / exports

def p_import_decl(p):
    """import_decl : IMPORT import_clause FROM STRING SEMI"""
    p[0] = N("import", p, 1, None, p[2], p[4])

def p_import_decl_kind(p):
    """import_decl : IMPORT TYPE import_clause FROM STRING SEMI
                   | IMPORT TYPEOF import_clause FROM STRING SEMI"""
    p[0] = N("import", p, 1, p[2], p[3], p[5])

def p_import_decl_bare(p):
    """import_decl : IMPORT STRING SEMI"""
    p[0] = N("import", p, 1, None, [], p[2])

def p_import_clause_default(p):
    """import_clause : ident
                     | ident COMMA named_imports
                     | ident COMMA TIMES AS ident"""
    specs = [N("import_default", p, 1, p[1])]
    if len(p) == 4:
        specs.extend(p[3])
    elif len(p) == 6:
        specs.append(N("import_ns", p, 3, p[5]))
    p[0] = specs

def p_import_clause_named(p):
    """import_clause : named_imports"""
    p[0] = p[1]

def p_import_clause_ns(p):
    """import_clause : TIMES AS ident"""
    p[0] = [N("import_ns", p, 1, p[3])]

def p_named_imports(p):
    """named_imports : LBRACE import_specs RBRACE
                     | LBRACE RBRACE"""
    p[0] = p[2] if len(p) == 4 else []

def p_import_specs(p):
    """import_specs : import_spec
                    | import_specs COMMA import_spec
                    | import_specs COMMA"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1]
        if len(p) == 4:
            p[0].append(p[3])

def p_import_spec(p):
    """import_spec : spec_name
                   | spec_name AS ident"""
    local = p[3] if len(p) == 4 else p[1]
    p[0] = N("import_spec", p, 1, p[1], local, None)

def p_import_spec_kind(p):
    """import_spec : TYPE spec_name
                   | TYPE spec_name AS ident
                   | TYPEOF spec_name
                   | TYPEOF spec_name AS ident"""
    local = p[4] if len(p) == 5 else p[2]
    p[0] = N("import_spec", p, 1, p[2], local, p[1])

def p_spec_name(p):
    """spec_name : ident
                 | DEFAULT"""
    p[0] = p[1]

def p_export_default_expr(p):
    """export_decl : EXPORT DEFAULT expr SEMI"""
    p[0] = N("export_default", p, 1, p[3])

def p_export_default_decl(p):
    """export_decl : EXPORT DEFAULT function_decl
                   | EXPORT DEFAULT class_decl"""
    p[0] = N("export_default", p, 1, p[3])

def p_export_declaration(p):
    """export_decl : EXPORT declaration"""
    p[0] = N("export_named", p, 1, p[2], [], None, None)

def p_export_specifiers(p):
    """export_decl : EXPORT named_exports from_opt SEMI"""
    p[0] = N("export_named", p, 1, None, p[2], p[3], None)

def p_export_type_specifiers(p):
    """export_decl : EXPORT TYPE named_exports from_opt SEMI"""
    p[0] = N("export_named", p, 1, None, p[3], p[4], "type")

def p_export_all(p):
    """export_decl : EXPORT TIMES FROM STRING SEMI
                   | EXPORT TIMES AS ident FROM STRING SEMI"""
    if len(p) == 6:
        p[0] = N("export_all", p, 1, None, p[4])
    else:
        p[0] = N("export_all", p, 1, p[4], p[6])

def p_declaration(p):
    """declaration : function_decl
                   | class_decl
                   | type_alias
                   | opaque_type
                   | interface_decl"""
    p[0] = p[1]

def p_declaration_var(p):
    """declaration : var_decl SEMI"""
    p[0] = p[1]

def p_from_opt(p):
    """from_opt : FROM STRING
                | empty"""
    p[0] = p[2] if len(p) == 3 else None

def p_named_exports(p):
    """named_exports : LBRACE export_specs RBRACE
                     | LBRACE RBRACE"""
    p[0] = p[2] if len(p) == 4 else []

def p_export_specs(p):
    """export_specs : export_spec
                    | export_specs COMMA export_spec
                    | export_specs COMMA"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1]
        if len(p) == 4:
            p[0].append(p[3])

def p_export_spec(p):
    """export_spec : spec_name
                   | spec_name AS spec_name"""
    exported = p[3] if len(p) == 4 else p[1]
    p[0] = N("export_spec", p, 1, p[1], exported)

# ---- type-level declarations

def p_type_alias(p):
    """type_alias : TYPE ident tparams_opt ASSIGN type SEMI"""
    p[0] = N("type_alias", p, 1, p[2], p[3], p[5], False)

def p_opaque_type(p):
    """opaque_type : OPAQUE TYPE ident tparams_opt supertype_opt ASSIGN type SEMI"""
    p[0] = N("opaque_type", p, 1, p[3], p[4], p[5], p[7], False)

def p_supertype_opt(p):
    """supertype_opt : COLON type
                     | empty"""
    p[0] = p[2] if len(p) == 3 else None

def p_interface_decl(p):
    """interface_decl : INTERFACE ident tparams_opt iface_extends_opt obj_type"""
    p[0] = N("interface", p, 1, p[2], p[3], p[4], p[5], False)

def p_iface_extends_opt(p):
    """iface_extends_opt : EXTENDS iface_ref_list
                         | empty"""
    p[0] = p[2] if len(p) == 3 else []

def p_iface_ref_list(p):
    """iface_ref_list : iface_ref
                      | iface_ref_list COMMA iface_ref"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_iface_ref(p):
    """iface_ref : type_id targs_opt"""
    p[0] = N("iface_ext", p, 1, p[1], p[2])

# ---- declare

def p_declare_var(p):
    """declare_stmt : DECLARE var_kind ident annot_opt SEMI"""
    p[0] = N("declare_var", p, 1, p[2], p[3], p[4])

def p_declare_fn_class(p):
    """declare_stmt : DECLARE declare_fn
                    | DECLARE declare_class"""
    p[2].pos = p.lexpos(1)
    p[0] = p[2]

def p_declare_type(p):
    """declare_stmt : DECLARE TYPE ident tparams_opt ASSIGN type SEMI"""
    p[0] = N("type_alias", p, 1, p[3], p[4], p[6], True)

def p_declare_opaque(p):
    """declare_stmt : DECLARE OPAQUE TYPE ident tparams_opt supertype_opt SEMI
                    | DECLARE OPAQUE TYPE ident tparams_opt supertype_opt ASSIGN type SEMI"""
    rhs = p[8] if len(p) == 10 else None
    p[0] = N("opaque_type", p, 1, p[4], p[5], p[6], rhs, True)

def p_declare_interface(p):
    """declare_stmt : DECLARE INTERFACE ident tparams_opt iface_extends_opt obj_type"""
    p[0] = N("interface", p, 1, p[3], p[4], p[5], p[6], True)

def p_declare_export_default(p):
    """declare_stmt : DECLARE EXPORT DEFAULT declare_fn
                    | DECLARE EXPORT DEFAULT declare_class"""
    p[0] = N("declare_export", p, 1, p[4], True)

def p_declare_export_default_type(p):
    """declare_stmt : DECLARE EXPORT DEFAULT type SEMI"""
    p[0] = N("declare_export", p, 1, p[4], True)

def p_declare_export(p):
    """declare_stmt : DECLARE EXPORT declare_fn
                    | DECLARE EXPORT declare_class"""
    p[0] = N("declare_export", p, 1, p[3], False)

def p_declare_export_var(p):
    """declare_stmt : DECLARE EXPORT var_kind ident annot_opt SEMI"""
    inner = N("declare_var", p, 3, p[3], p[4], p[5])
    p[0] = N("declare_export", p, 1, inner, False)

def p_declare_fn(p):
    """declare_fn : FUNCTION ident tparams_opt lparen fparams RPAREN COLON type SEMI"""
    params, rest = p[5]
    fn = N("type_function", p, 4, p[3], params, rest, p[8])
    p[0] = N("declare_function", p, 1, p[2], N("type_annotation", p, 7, fn))

def p_declare_class(p):
    """declare_class : CLASS ident tparams_opt iface_extends_opt obj_type"""
    p[0] = N("declare_class", p, 1, p[2], p[3], p[4], p[5])

# ---- types

def p_type(p):
    """type : union_type
            | PIPE union_type
            | AMP inter_type"""
    p[0] = p[len(p) - 1]

def p_union_type(p):
    """union_type : union_type PIPE inter_type
                  | inter_type"""
    if len(p) == 2:
        p[0] = p[1]
    elif p[1].kind == "type_union":
        p[1].data[0].append(p[3])
        p[0] = p[1]
    else:
        p[0] = N("type_union", p, 1, [p[1], p[3]])

def p_inter_type(p):
    """inter_type : inter_type AMP prefix_type
                  | prefix_type"""
    if len(p) == 2:
        p[0] = p[1]
    elif p[1].kind == "type_intersection":
        p[1].data[0].append(p[3])
        p[0] = p[1]
    else:
        p[0] = N("type_intersection", p, 1, [p[1], p[3]])

def p_prefix_type(p):
    """prefix_type : QUESTION prefix_type
                   | postfix_type"""
    if len(p) == 3:
        p[0] = N("type_nullable", p, 1, p[2])
    else:
        p[0] = p[1]

def p_prefix_type_function(p):
    """prefix_type : postfix_type FATARROW type"""
    # `string => void`: a single unnamed parameter without parentheses
    param = Node("fn_param", p[1].pos, (None, p[1], False))
    p[0] = Node("type_function", p[1].pos, (None, [param], None, p[3]))

def p_postfix_type(p):
    """postfix_type : postfix_type LBRACKET RBRACKET
                    | primary_type"""
    if len(p) == 4:
        p[0] = N("type_array", p, 1, p[1])
    else:
        p[0] = p[1]

def p_primary_type_ref(p):
    """primary_type : type_id targs_opt"""
    tid, targs = p[1], p[2]
    if targs is None and tid.kind == "ident" and tid.data[0] in PRIMITIVE_TYPES:
        p[0] = N(PRIMITIVE_TYPES[tid.data[0]], p, 1)
    else:
        p[0] = N("type_generic", p, 1, tid, targs)

def p_primary_type_literal(p):
    """primary_type : STRING
                    | NUMBER"""
    kind = "type_string_lit" if p.slice[1].type == "STRING" else "type_number_lit"
    p[0] = N(kind, p, 1, p[1])

def p_primary_type_negative(p):
    """primary_type : MINUS NUMBER"""
    p[0] = N("type_number_lit", p, 1, "-" + p[2])

def p_primary_type_keyword(p):
    """primary_type : TRUE
                    | FALSE
                    | NULL
                    | VOID
                    | TIMES"""
    tok = p.slice[1].type
    if tok in ("TRUE", "FALSE"):
        p[0] = N("type_boolean_lit", p, 1, p[1])
    else:
        p[0] = N({"NULL": "type_null", "VOID": "type_void", "TIMES": "type_exists"}[tok], p, 1)

def p_primary_type_typeof(p):
    """primary_type : TYPEOF primary_type"""
    p[0] = N("type_typeof", p, 1, p[2])

def p_primary_type_object(p):
    """primary_type : obj_type"""
    p[0] = p[1]

def p_primary_type_tuple(p):
    """primary_type : LBRACKET type_list RBRACKET
                    | LBRACKET RBRACKET"""
    p[0] = N("type_tuple", p, 1, p[2] if len(p) == 4 else [])

def p_primary_type_group(p):
    """primary_type : LPAREN type RPAREN"""
    p[0] = p[2]

def p_primary_type_function(p):
    """primary_type : tparams_opt ARROW_LPAREN fparams RPAREN FATARROW type"""
    params, rest = p[3]
    p[0] = Node("type_function", p.lexpos(2) if p[1] is None else p.lexpos(1), (p[1], params, rest, p[6]))

def p_type_id(p):
    """type_id : ident
               | type_id DOT prop_name"""
    if len(p) == 2:
        p[0] = N("ident", p, 1, p[1])
    else:
        p[0] = N("qualified", p, 1, p[1], p[3])

def p_type_list(p):
    """type_list : type
                 | type_list COMMA type"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_obj_type(p):
    """obj_type : lbrace obj_body RBRACE
                | EXACT_LBRACE obj_body EXACT_RBRACE"""
    p[0] = N("type_object", p, 1, p[2], p.slice[1].type == "EXACT_LBRACE")

def p_lbrace(p):
    """lbrace : LBRACE
              | BLOCK_LBRACE"""
    p[0] = p[1]

def p_obj_body(p):
    """obj_body : obj_members
                | obj_members obj_sep
                | empty"""
    p[0] = p[1] if p[1] is not None else []

def p_obj_members(p):
    """obj_members : obj_member
                   | obj_members obj_sep obj_member"""
    if len(p) == 2:
        p[0] = [p[1]] if p[1] is not None else []
    else:
        p[0] = p[1]
        if p[3] is not None:
            p[0].append(p[3])

def p_obj_sep(p):
    """obj_sep : COMMA
               | SEMI"""
    p[0] = p[1]

def p_obj_key(p):
    """obj_key : prop_name
               | STRING"""
    p[0] = p[1]

def p_variance(p):
    """variance : PLUS
                | MINUS"""
    p[0] = p[1]

def p_obj_member_prop(p):
    """obj_member : obj_key optq COLON type
                  | variance obj_key optq COLON type"""
    if len(p) == 5:
        p[0] = N("obj_prop", p, 1, p[1], p[4], p[2], None, False)
    else:
        p[0] = N("obj_prop", p, 1, p[2], p[5], p[3], p[1], False)

def p_obj_member_method(p):
    """obj_member : obj_key tparams_opt lparen fparams RPAREN COLON type"""
    params, rest = p[4]
    fn = N("type_function", p, 3, p[2], params, rest, p[7])
    p[0] = N("obj_prop", p, 1, p[1], fn, False, None, True)

def p_obj_member_spread(p):
    """obj_member : ELLIPSIS type
                  | ELLIPSIS"""
    # a bare `...` only marks the object as inexact
    p[0] = N("obj_spread", p, 1, p[2]) if len(p) == 3 else None

def p_obj_member_indexer(p):
    """obj_member : LBRACKET ident COLON type RBRACKET COLON type
                  | LBRACKET type RBRACKET COLON type"""
    if len(p) == 8:
        p[0] = N("obj_indexer", p, 1, p[2], p[4], p[7], None)
    else:
        p[0] = N("obj_indexer", p, 1, None, p[2], p[5], None)

def p_obj_member_indexer_variance(p):
    """obj_member : variance LBRACKET ident COLON type RBRACKET COLON type
                  | variance LBRACKET type RBRACKET COLON type"""
    if len(p) == 9:
        p[0] = N("obj_indexer", p, 1, p[3], p[5], p[8], p[1])
    else:
        p[0] = N("obj_indexer", p, 1, None, p[3], p[6], p[1])

def p_optq(p):
    """optq : QUESTION
            | empty"""
    p[0] = p[1] is not None

def p_fparams(p):
    """fparams : empty
               | fparam_list
               | fparam_list COMMA
               | fparam_list COMMA frest
               | frest"""
    if p[1] is None:
        p[0] = ([], None)
    elif isinstance(p[1], Node):
        p[0] = ([], p[1])
    else:
        p[0] = (p[1], p[3] if len(p) == 4 else None)

def p_fparam_list(p):
    """fparam_list : fparam
                   | fparam_list COMMA fparam"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_fparam_named(p):
    """fparam : ident optq COLON type"""
    p[0] = N("fn_param", p, 1, p[1], p[4], p[2])

def p_fparam_anon(p):
    """fparam : type"""
    p[0] = N("fn_param", p, 1, None, p[1], False)

def p_frest(p):
    """frest : ELLIPSIS ident optq COLON type
             | ELLIPSIS type"""
    if len(p) == 6:
        p[0] = N("fn_param", p, 1, p[2], p[5], False)
    else:
        p[0] = N("fn_param", p, 1, None, p[2], False)

def p_tparams_opt(p):
    """tparams_opt : tparams
                   | empty"""
    p[0] = p[1]

def p_tparams(p):
    """tparams : LT tparam_list GT
               | LT tparam_list COMMA GT"""
    p[0] = N("tparams", p, 1, p[2])

def p_tparam_list(p):
    """tparam_list : tparam
                   | tparam_list COMMA tparam"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_tparam(p):
    """tparam : ident bound_opt tdefault_opt
              | variance ident bound_opt tdefault_opt"""
    if len(p) == 4:
        p[0] = N("tparam", p, 1, p[1], p[2], p[3], None)
    else:
        p[0] = N("tparam", p, 1, p[2], p[3], p[4], p[1])

def p_bound_opt(p):
    """bound_opt : COLON type
                 | empty"""
    p[0] = p[2] if len(p) == 3 else None

def p_tdefault_opt(p):
    """tdefault_opt : ASSIGN type
                    | empty"""
    p[0] = p[2] if len(p) == 3 else None

def p_targs_opt(p):
    """targs_opt : targs
                 | empty"""
    p[0] = p[1]

def p_targs(p):
    """targs : LT type_list GT
             | LT type_list COMMA GT"""
    p[0] = N("targs", p, 1, p[2])

def p_annot_opt(p):
    """annot_opt : COLON type
                 | empty"""
    p[0] = N("type_annotation", p, 1, p[2]) if len(p) == 3 else None

# ---- statements

def p_var_decl(p):
    """var_decl : var_kind declarators"""
    p[0] = N("var_decl", p, 1, p[1], p[2])

def p_var_kind(p):
    """var_kind : VAR
                | LET
                | CONST"""
    p[0] = p[1]

def p_declarators(p):
    """declarators : declarator
                   | declarators COMMA declarator"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_declarator(p):
    """declarator : binding annot_opt init_opt"""
    p[0] = N("declarator", p, 1, p[1], p[2], p[3])

def p_init_opt(p):
    """init_opt : ASSIGN expr
                | empty"""
    p[0] = p[2] if len(p) == 3 else None

def p_binding(p):
    """binding : ident"""
    p[0] = N("ident", p, 1, p[1])

def p_binding_pattern(p):
    """binding : LBRACE pattern_props RBRACE
               | LBRACE RBRACE"""
    p[0] = N("obj_pattern", p, 1, p[2] if len(p) == 4 else [])

def p_pattern_props(p):
    """pattern_props : pattern_prop
                     | pattern_props COMMA pattern_prop
                     | pattern_props COMMA"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1]
        if len(p) == 4:
            p[0].append(p[3])

def p_pattern_prop_short(p):
    """pattern_prop : ident init_opt"""
    p[0] = N("pattern_prop", p, 1, p[1], None, p[2], False)

def p_pattern_prop_long(p):
    """pattern_prop : prop_name COLON binding init_opt"""
    p[0] = N("pattern_prop", p, 1, p[1], p[3], p[4], False)

def p_pattern_prop_rest(p):
    """pattern_prop : ELLIPSIS ident"""
    p[0] = N("pattern_prop", p, 1, p[2], None, None, True)

def p_function_decl(p):
    """function_decl : FUNCTION fn_rest
                     | ASYNC FUNCTION fn_rest"""
    name, tparams, params, ret, body = p[len(p) - 1]
    p[0] = N("function", p, 1, name, tparams, params, ret, body, len(p) == 4, False)

def p_function_expr(p):
    """function_expr : FUNCTION_EXPR fn_rest
                     | ASYNC FUNCTION_EXPR fn_rest"""
    name, tparams, params, ret, body = p[len(p) - 1]
    p[0] = N("function", p, 1, name, tparams, params, ret, body, len(p) == 4, True)

def p_fn_rest(p):
    """fn_rest : ident tparams_opt lparen params RPAREN ret_opt fn_body
               | tparams_opt lparen params RPAREN ret_opt fn_body"""
    if len(p) == 8:
        p[0] = (p[1], p[2], p[4], p[6], p[7])
    else:
        p[0] = (None, p[1], p[3], p[5], p[6])

def p_lparen(p):
    """lparen : LPAREN
              | ARROW_LPAREN"""
    p[0] = p[1]

def p_params(p):
    """params : empty
              | param_list
              | param_list COMMA
              | param_list COMMA rest_param
              | rest_param"""
    if p[1] is None:
        p[0] = []
    elif isinstance(p[1], Node):
        p[0] = [p[1]]
    else:
        p[0] = p[1] + ([p[3]] if len(p) == 4 else [])

def p_param_list(p):
    """param_list : param
                  | param_list COMMA param"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1] + [p[3]]

def p_param(p):
    """param : binding optq annot_opt init_opt"""
    p[0] = N("param", p, 1, p[1], p[3], p[2], p[4], False)

def p_rest_param(p):
    """rest_param : ELLIPSIS binding annot_opt"""
    p[0] = N("param", p, 1, p[2], p[3], False, None, True)

def p_ret_opt(p):
    """ret_opt : COLON type
               | empty"""
    p[0] = N("type_annotation", p, 1, p[2]) if len(p) == 3 else None

def p_fn_body(p):
    """fn_body : lbrace stmt_list RBRACE"""
    p[0] = N("block", p, 1, p[2])

def p_class_decl(p):
    """class_decl : CLASS ident tparams_opt extends_opt implements_opt lbrace class_body RBRACE"""
    sup, sup_targs = p[4]
    p[0] = N("class", p, 1, p[2], p[3], sup, sup_targs, p[5], p[7])

def p_extends_opt(p):
    """extends_opt : EXTENDS member targs_opt
                   | empty"""
    p[0] = (p[2], p[3]) if len(p) == 4 else (None, None)

def p_implements_opt(p):
    """implements_opt : IMPLEMENTS iface_ref_list
                      | empty"""
    p[0] = p[2] if len(p) == 3 else []

def p_class_body(p):
    """class_body : class_body class_member
                  | empty"""
    if len(p) == 3:
        p[0] = p[1]
        if p[2] is not None:
            p[0].append(p[2])
    else:
        p[0] = []

def p_class_member(p):
    """class_member : member_def
                    | SEMI"""
    p[0] = p[1] if isinstance(p[1], Node) else None

def p_class_member_static(p):
    """class_member : STATIC member_def"""
    m = p[2]
    if m.kind == "class_prop":
        key, annot, value, _, variance, optional = m.data
        m.data = (key, annot, value, True, variance, optional)
    else:
        key, fn, _ = m.data
        m.data = (key, fn, True)
    m.pos = p.lexpos(1)
    p[0] = m

def p_member_def_prop(p):
    """member_def : prop_name prop_rest
                  | variance prop_name prop_rest"""
    if len(p) == 3:
        optional, annot, value = p[2]
        p[0] = N("class_prop", p, 1, p[1], annot, value, False, None, optional)
    else:
        optional, annot, value = p[3]
        p[0] = N("class_prop", p, 1, p[2], annot, value, False, p[1], optional)

def p_prop_rest(p):
    """prop_rest : optq annot_opt init_opt"""
    p[0] = (p[1], p[2], p[3])

def p_member_def_method(p):
    """member_def : prop_name tparams_opt lparen params RPAREN ret_opt fn_body
                  | ASYNC prop_name tparams_opt lparen params RPAREN ret_opt fn_body"""
    if len(p) == 8:
        fn = N("function", p, 1, None, p[2], p[4], p[6], p[7], False, True)
        p[0] = N("class_method", p, 1, p[1], fn, False)
    else:
        fn = N("function", p, 1, None, p[3], p[5], p[7], p[8], True, True)
        p[0] = N("class_method", p, 1, p[2], fn, False)

def p_if_stmt(p):
    """if_stmt : IF LPAREN expr RPAREN stmt
               | IF LPAREN expr RPAREN stmt ELSE stmt"""
    p[0] = N("if", p, 1, p[3], p[5], p[7] if len(p) == 8 else None)

def p_while_stmt(p):
    """while_stmt : WHILE LPAREN expr RPAREN stmt"""
    p[0] = N("while", p, 1, p[3], p[5])

def p_block(p):
    """block : BLOCK_LBRACE stmt_list RBRACE"""
    p[0] = N("block", p, 1, p[2])

def p_return_stmt(p):
    """return_stmt : RETURN expr
                   | RETURN"""
    p[0] = N("return", p, 1, p[2] if len(p) == 3 else None)

def p_throw_stmt(p):
    """throw_stmt : THROW expr"""
    p[0] = N("throw", p, 1, p[2])

def p_expr_stmt(p):
    """expr_stmt : expr"""
    p[0] = N("expr_stmt", p, 1, p[1])

# ---- expressions

def p_expr_binops(p):
    """expr : expr PLUS expr
            | expr MINUS expr
            | expr TIMES expr
            | expr DIVIDE expr
            | expr MOD expr
            | expr ANDAND expr
            | expr OROR expr
            | expr NULLISH expr
            | expr AMP expr
            | expr PIPE expr
            | expr XOR expr
            | expr EQ expr
            | expr NE expr
            | expr SEQ expr
            | expr SNE expr
            | expr LT expr
            | expr LE expr
            | expr GT expr
            | expr GE expr
            | expr INSTANCEOF expr
            | expr IN expr"""
    p[0] = N("binary", p, 1, p[2], p[1], p[3])

def p_expr_cond(p):
    """expr : expr QUESTION expr COLON expr"""
    p[0] = N("cond", p, 1, p[1], p[3], p[5])

def p_expr_assign(p):
    """expr : expr ASSIGN expr
            | expr ASSIGNOP expr"""
    p[0] = N("assign", p, 1, p[2], p[1], p[3])

def p_expr_unary(p):
    """expr : BANG expr %prec UNARY
            | MINUS expr %prec UNARY
            | PLUS expr %prec UNARY
            | TILDE expr %prec UNARY
            | TYPEOF expr %prec UNARY
            | VOID expr %prec UNARY
            | DELETE expr %prec UNARY
            | AWAIT expr %prec UNARY"""
    p[0] = N("unary", p, 1, p[1], p[2])

def p_expr_update_prefix(p):
    """expr : PLUSPLUS expr %prec UNARY
            | MINUSMINUS expr %prec UNARY"""
    p[0] = N("update", p, 1, p[1], p[2], True)

def p_expr_update_postfix(p):
    """expr : postfix PLUSPLUS
            | postfix MINUSMINUS"""
    p[0] = N("update", p, 1, p[2], p[1], False)

def p_expr_other(p):
    """expr : arrow
            | postfix"""
    p[0] = p[1]

def p_arrow_ident(p):
    """arrow : ident FATARROW arrow_body"""
    param = N("param", p, 1, N("ident", p, 1, p[1]), None, False, None, False)
    p[0] = N("arrow", p, 1, None, [param], None, p[3], False)

def p_arrow_async_ident(p):
    """arrow : ASYNC ident FATARROW arrow_body"""
    param = N("param", p, 2, N("ident", p, 2, p[2]), None, False, None, False)
    p[0] = N("arrow", p, 1, None, [param], None, p[4], True)

def p_arrow_parens(p):
    """arrow : ARROW_LPAREN params RPAREN arrow_ret arrow_body
             | tparams ARROW_LPAREN params RPAREN arrow_ret arrow_body
             | ASYNC ARROW_LPAREN params RPAREN arrow_ret arrow_body"""
    if len(p) == 6:
        p[0] = N("arrow", p, 1, None, p[2], p[4], p[5], False)
    elif p.slice[1].type == "ASYNC":
        p[0] = N("arrow", p, 1, None, p[3], p[5], p[6], True)
    else:
        p[0] = N("arrow", p, 1, p[1], p[3], p[5], p[6], False)

def p_arrow_ret(p):
    """arrow_ret : FATARROW
                 | COLON type RETURN_ARROW"""
    # the '=>' after a return annotation is retagged by TokenStream
    p[0] = N("type_annotation", p, 1, p[2]) if len(p) == 4 else None

def p_arrow_body(p):
    """arrow_body : block
                  | expr"""
    p[0] = p[1]

def p_postfix(p):
    """postfix : member
               | call"""
    p[0] = p[1]

def p_postfix_new(p):
    """postfix : NEW member"""
    p[0] = N("new", p, 1, p[2], None, None)

def p_member_primary(p):
    """member : primary"""
    p[0] = p[1]

def p_member_dot(p):
    """member : member DOT prop_name"""
    p[0] = N("member", p, 1, p[1], p[3], False, False)

def p_member_index(p):
    """member : member LBRACKET expr RBRACKET"""
    p[0] = N("member", p, 1, p[1], p[3], True, False)

def p_member_new(p):
    """member : NEW member args
              | NEW member targs args"""
    if len(p) == 4:
        p[0] = N("new", p, 1, p[2], None, p[3])
    else:
        p[0] = N("new", p, 1, p[2], p[3], p[4])

def p_call(p):
    """call : member args
            | call args"""
    p[0] = N("call", p, 1, p[1], p[2], False)

def p_call_optional(p):
    """call : member QDOT args
            | call QDOT args"""
    p[0] = N("call", p, 1, p[1], p[3], True)

def p_call_dot(p):
    """call : call DOT prop_name"""
    p[0] = N("member", p, 1, p[1], p[3], False, False)

def p_call_index(p):
    """call : call LBRACKET expr RBRACKET"""
    p[0] = N("member", p, 1, p[1], p[3], True, False)

def p_call_optional_member(p):
    """call : member QDOT prop_name
            | call QDOT prop_name"""
    p[0] = N("member", p, 1, p[1], p[3], False, True)

def p_call_optional_index(p):
    """call : member QDOT LBRACKET expr RBRACKET
            | call QDOT LBRACKET expr RBRACKET"""
    p[0] = N("member", p, 1, p[1], p[4], True, True)

def p_args(p):
    """args : lparen arg_list RPAREN
            | lparen RPAREN"""
    p[0] = p[2] if len(p) == 4 else []

def p_arg_list(p):
    """arg_list : arg
                | arg_list COMMA arg
                | arg_list COMMA"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1]
        if len(p) == 4:
            p[0].append(p[3])

def p_arg(p):
    """arg : expr
           | ELLIPSIS expr"""
    p[0] = p[1] if len(p) == 2 else N("spread", p, 1, p[2])

def p_primary_ident(p):
    """primary : ident"""
    p[0] = N("ident", p, 1, p[1])

def p_primary_literal(p):
    """primary : NUMBER
               | STRING"""
    p[0] = N("num" if p.slice[1].type == "NUMBER" else "str", p, 1, p[1])

def p_primary_template(p):
    """primary : TEMPLATE
               | TEMPLATE_HEAD template_spans"""
    if len(p) == 2:
        p[0] = N("template", p, 1, [p[1][1:-1]], [])
    else:
        quasis, exprs = p[2]
        p[0] = N("template", p, 1, [p[1]] + quasis, exprs)

def p_template_spans(p):
    """template_spans : expr TEMPLATE_TAIL
                      | expr TEMPLATE_MIDDLE template_spans"""
    if len(p) == 3:
        p[0] = ([p[2]], [p[1]])
    else:
        quasis, exprs = p[3]
        p[0] = ([p[2]] + quasis, [p[1]] + exprs)

def p_primary_keyword(p):
    """primary : THIS
               | TRUE
               | FALSE
               | NULL"""
    tok = p.slice[1].type
    if tok == "THIS":
        p[0] = N("this", p, 1)
    elif tok == "NULL":
        p[0] = N("null", p, 1)
    else:
        p[0] = N("bool", p, 1, tok == "TRUE")

def p_primary_group(p):
    """primary : LPAREN expr RPAREN"""
    # parentheses end an optional chain: (a?.b).c
    if FlowToTs._optional_link(p[2]) is not None:
        p[0] = N("paren", p, 1, p[2])
    else:
        p[0] = p[2]

def p_primary_typecast(p):
    """primary : LPAREN expr COLON type RPAREN"""
    p[0] = N("typecast", p, 1, p[2], N("type_annotation", p, 3, p[4]))

def p_primary_function(p):
    """primary : function_expr"""
    p[0] = p[1]

def p_primary_array(p):
    """primary : LBRACKET arg_list RBRACKET
               | LBRACKET RBRACKET"""
    p[0] = N("array", p, 1, p[2] if len(p) == 4 else [])

def p_primary_object(p):
    """primary : LBRACE obj_props RBRACE
               | LBRACE RBRACE"""
    p[0] = N("object", p, 1, p[2] if len(p) == 4 else [])

def p_obj_props(p):
    """obj_props : obj_prop
                 | obj_props COMMA obj_prop
                 | obj_props COMMA"""
    if len(p) == 2:
        p[0] = [p[1]]
    else:
        p[0] = p[1]
        if len(p) == 4:
            p[0].append(p[3])

def p_obj_prop_keyed(p):
    """obj_prop : prop_name COLON expr
                | STRING COLON expr
                | NUMBER COLON expr"""
    p[0] = N("prop", p, 1, p[1], p[3], False, False)

def p_obj_prop_computed(p):
    """obj_prop : LBRACKET expr RBRACKET COLON expr"""
    p[0] = N("prop", p, 1, p[2], p[5], True, False)

def p_obj_prop_shorthand(p):
    """obj_prop : ident"""
    p[0] = N("prop", p, 1, p[1], N("ident", p, 1, p[1]), False, True)

def p_obj_prop_spread(p):
    """obj_prop : ELLIPSIS expr"""
    p[0] = N("spread", p, 1, p[2])

def p_obj_prop_method(p):
    """obj_prop : prop_name lparen params RPAREN ret_opt fn_body"""
    fn = N("function", p, 1, None, None, p[3], p[5], p[6], False, True)
    p[0] = N("obj_method", p, 1, p[1], fn)

def p_error(p):
    if p is None:
        raise ParseError("unexpected end of file", "syntax", 0,
                         "check for unclosed braces, parentheses, or brackets")
    hint = None
    if p.type in ("RPAREN", "RBRACE"):
        hint = "check for a missing separator or an unsupported construct before this token"
    raise ParseError(f"unexpected token {p.value!r}", "syntax", p.lexpos, hint)

def _blank_line_before(text: str, pos: int) -> bool:
    i = pos - 1
    newlines = 0
    while i >= 0 and text[i] in " \t\r\n":
        if text[i] == "\n":
            newlines += 1
        i -= 1
    return i >= 0 and newlines >= 2

STATEMENT_KINDS = {
    "import", "export_named", "export_default", "export_all", "type_alias", "opaque_type",
    "interface", "declare_var", "declare_function", "declare_class", "declare_export",
    "var_decl", "function", "class", "return", "throw", "if", "while", "expr_stmt",
    "class_prop", "class_method",
}

# members of type bodies and object literals carry their own comments
COMMENT_TARGETS = STATEMENT_KINDS | {"obj_prop", "obj_indexer", "prop", "obj_method"}

# code ending with one of these does not own a comment that follows it
OPENING = ("{", "{|", "(", "[")

def attach_comments(tree: Node, comments: List[Tuple[int, str]], src: Source):
    """Hang every comment on a node.

    A comment with code before it on its line trails the first node that
    starts on that line. Any other comment leads the first node starting
    after it, or stays on the program when nothing follows."""
    targets = [n for n in walk(tree) if n.kind in COMMENT_TARGETS
               and not (n.kind == "function" and n.data[6])]
    targets.sort(key=lambda n: n.pos)
    starts = [n.pos for n in targets]
    first_pos: Dict[int, int] = {}
    for cpos, text in sorted(comments):
        bol = src.text.rfind("\n", 0, cpos) + 1
        before = src.text[bol:cpos].rstrip()
        if before and not before.endswith(OPENING):
            i = bisect.bisect_left(starts, bol)
            if i < len(targets) and targets[i].pos < cpos:
                targets[i].trailing.append(text)
                continue
        i = bisect.bisect_left(starts, cpos + len(text))
        if i < len(targets):
            targets[i].comments.append(text)
            first_pos.setdefault(id(targets[i]), cpos)
        else:
            tree.comments.append(text)
    for n in targets:
        if n.kind in STATEMENT_KINDS:
            n.blank_before = _blank_line_before(src.text, first_pos.get(id(n), n.pos))

def parse(src: Source) -> Node:
    stream, parser = attach_parser(src)
    tree = parser.parse(lexer=stream, tracking=True)
    attach_comments(tree, stream.comments, src)
    return tree

# ============================================================
# Type Node Converter
# ============================================================

SIMPLE_TYPES = {
    "type_any": "ts_any",
    "type_exists": "ts_any",
    "type_mixed": "ts_unknown",
    "type_empty": "ts_never",
    "type_void": "ts_void",
    "type_null": "ts_null",
    "type_string": "ts_string",
    "type_number": "ts_number",
    "type_boolean": "ts_boolean",
    "type_bigint": "ts_bigint",
    "type_symbol": "ts_symbol",
}

LITERAL_TYPES = {"type_string_lit", "type_number_lit", "type_boolean_lit"}

# generic names that become a reference to another name, arguments converted
RENAMED_GENERICS = {
    "$Diff": ("Exclude", 2),
    "$Rest": ("Exclude", 2),
    "$ReadOnlyArray": ("ReadonlyArray", 1),
    "$Shape": ("Partial", 1),
    "$NonMaybeType": ("NonNullable", 1),
}

TIMER_TYPES = {"TimeoutID", "IntervalID"}

EVENT_TYPES = {
    "SyntheticEvent": "SyntheticEvent",
    "SyntheticMouseEvent": "MouseEvent",
    "SyntheticKeyboardEvent": "KeyboardEvent",
}

UI_NAMESPACE = "React"
UI_ALIASES = {"Node": "ReactNode", "Element": "ReactElement"}

# never used as a derived parameter name
RESERVED_WORDS = set(reserved) | {
    "break", "case", "catch", "continue", "debugger", "do", "enum", "finally", "for",
    "super", "switch", "try", "with", "yield", "package", "private", "protected",
    "public", "undefined",
}

MAPPED_PARAM = "K"

REVIEW_COMMENT = "/* flowts: generated from ?? or ?. - review */"

def ident(name: str, pos: int = 0) -> Node:
    return mk("ident", pos, name)

def qualified_name(id: Node) -> str:
    if id.kind == "ident":
        return id.data[0]
    return f"{qualified_name(id.data[0])}.{id.data[1]}"

def entity(id: Node) -> Node:
    """A reference name in type position."""
    if id.kind in ("ident", "ts_qualified"):
        return id
    if id.kind == "qualified":
        return mk("ts_qualified", id.pos, entity(id.data[0]), id.data[1])
    raise TransformError(f"'{id.kind}' is not a name", id.kind, id.pos)

def member_expr(id: Node) -> Node:
    """The same reference name in value position."""
    if id.kind == "ident":
        return id
    if id.kind in ("qualified", "ts_qualified"):
        return mk("member", id.pos, member_expr(id.data[0]), id.data[1], False, False)
    raise TransformError(f"'{id.kind}' is not a name", id.kind, id.pos)

class FlowToTs:
    def __init__(self, src: Source, es: ErrorSink):
        self.src = src
        self.es = es

    def warn(self, msg: str, node: Node, hint: Optional[str] = None):
        self.es.warning(msg, self.src, node.pos, hint)

    def fatal(self, msg: str, node: Node, hint: Optional[str] = None):
        raise TransformError(msg, node.kind, node.pos, hint)

    def convert_type(self, node: Node) -> Node:
        k = node.kind
        if k.startswith("ts_"):
            return node
        if k in SIMPLE_TYPES:
            return mk(SIMPLE_TYPES[k], node.pos)
        if k in LITERAL_TYPES:
            return mk("ts_literal", node.pos, node.data[0])
        if k == "type_annotation":
            return mk("ts_type_annotation", node.pos, self.convert_type(node.data[0]))
        if k == "type_nullable":
            inner = self.convert_type(node.data[0])
            return self.union([inner, mk("ts_null", node.pos)], node.pos)
        if k == "type_array":
            return mk("ts_array", node.pos, self.convert_type(node.data[0]))
        if k == "type_tuple":
            return mk("ts_tuple", node.pos, [self.convert_type(t) for t in node.data[0]])
        if k == "type_union":
            return self.union([self.convert_type(t) for t in node.data[0]], node.pos)
        if k == "type_intersection":
            return mk("ts_intersection", node.pos, [self.convert_type(t) for t in node.data[0]])
        if k == "type_object":
            return self.convert_object(node)
        if k == "type_function":
            return self.convert_function(node)
        if k == "type_generic":
            return self.convert_generic(node)
        if k == "type_typeof":
            arg = node.data[0]
            if arg.kind == "type_generic":
                return mk("ts_typeof", node.pos, entity(arg.data[0]))
            self.warn("typeof over a non-reference type cannot be expressed; using the type itself", node)
            return self.convert_type(arg)
        self.fatal(f"unsupported type node '{k}'", node)

    @staticmethod
    def union(types: List[Node], pos: int) -> Node:
        flat: List[Node] = []
        for t in types:
            if t.kind == "ts_union":
                flat.extend(t.data[0])
            else:
                flat.append(t)
        return mk("ts_union", pos, flat)

    # ---- generic references

    def convert_generic(self, node: Node) -> Node:
        id, targs = node.data
        args = targs.data[0] if targs is not None else []
        if id.kind == "ident":
            special = self._special_generic(id.data[0], args, node)
            if special is not None:
                return special
        elif id.kind == "qualified" and id.data[0].kind == "ident" \
                and id.data[0].data[0] == UI_NAMESPACE and id.data[1] in UI_ALIASES and len(args) <= 1:
            name = mk("ts_qualified", id.pos, ident(UI_NAMESPACE, id.pos), UI_ALIASES[id.data[1]])
            return mk("ts_type_ref", node.pos, name, self.convert_type_args(targs))
        return mk("ts_type_ref", node.pos, entity(id), self.convert_type_args(targs))

    def _special_generic(self, name: str, args: List[Node], node: Node) -> Optional[Node]:
        pos = node.pos
        n = len(args)
        if name == "$Exact" and n == 1:
            return self.convert_type(args[0])
        if name == "$Keys" and n == 1:
            return mk("ts_keyof", pos, self.convert_type(args[0]))
        if name == "$Values" and n == 1:
            obj = self.convert_type(args[0])
            return mk("ts_indexed", pos, obj, mk("ts_keyof", pos, copy.deepcopy(obj)))
        if name in ("$ElementType", "$PropertyType") and n == 2:
            return mk("ts_indexed", pos, self.convert_type(args[0]), self.convert_type(args[1]))
        if name == "$ReadOnly" and n == 1:
            return self._readonly(self.convert_type(args[0]))
        if name == "$Call" and n >= 1:
            return self._reference("ReturnType", [args[0]], pos)
        if name in RENAMED_GENERICS and n == RENAMED_GENERICS[name][1]:
            return self._reference(RENAMED_GENERICS[name][0], args, pos)
        if name in TIMER_TYPES and n == 0:
            return mk("ts_number", pos)
        if name in EVENT_TYPES:
            entity_ = mk("ts_qualified", pos, ident(UI_NAMESPACE, pos), EVENT_TYPES[name])
            targs = mk("ts_targs", pos, [self.convert_type(a) for a in args]) if args else None
            return mk("ts_type_ref", pos, entity_, targs)
        return None

    def _reference(self, name: str, args: List[Node], pos: int) -> Node:
        return mk("ts_type_ref", pos, ident(name, pos), mk("ts_targs", pos, [self.convert_type(a) for a in args]))

    @staticmethod
    def _readonly(t: Node) -> Node:
        # one level only, nested literals stay mutable
        if t.kind == "ts_type_literal":
            members = []
            for m in t.data[0]:
                if m.kind == "ts_prop_sig":
                    key, ty, optional, _ = m.data
                    m = keep_comments(m, mk("ts_prop_sig", m.pos, key, ty, optional, True))
                elif m.kind == "ts_index_sig":
                    name, key, value, _ = m.data
                    m = keep_comments(m, mk("ts_index_sig", m.pos, name, key, value, True))
                members.append(m)
            return mk("ts_type_literal", t.pos, members)
        if t.kind == "ts_mapped":
            name, constraint, value, _ = t.data
            return mk("ts_mapped", t.pos, name, constraint, value, True)
        return t

    # ---- object types

    def convert_object(self, node: Node) -> Node:
        members, _exact = node.data
        indexers = [m for m in members if m.kind == "obj_indexer"]
        # a named indexer maps over its key, an anonymous one stays an index signature
        if indexers and indexers[0].data[0]:
            return self._mapped(node, indexers)
        fields: List[Node] = []
        spreads: List[Node] = []
        seen_indexer = False
        for m in members:
            if m.kind == "obj_spread":
                spreads.append(self.convert_member(m))
                continue
            if m.kind == "obj_indexer":
                if seen_indexer:
                    self.warn("only the first indexer of an object type is kept", m)
                    continue
                seen_indexer = True
            fields.append(keep_comments(m, self.convert_member(m)))
        literal = mk("ts_type_literal", node.pos, fields)
        if not spreads:
            return literal
        parts = ([literal] if fields else []) + spreads
        if len(parts) == 1:
            return parts[0]
        return mk("ts_intersection", node.pos, parts)

    def _mapped(self, node: Node, indexers: List[Node]) -> Node:
        first = indexers[0]
        for extra in indexers[1:]:
            self.warn("only the first indexer of an object type is kept", extra)
        for m in node.data[0]:
            if m.kind != "obj_indexer":
                self.warn("members next to an indexer are dropped", m,
                          "move the named fields into a separate type and intersect it")
        _id, key, value, variance = first.data
        if variance == "-":
            self.warn("contravariant indexer has no TypeScript equivalent; marker dropped", first)
        return mk("ts_mapped", node.pos, MAPPED_PARAM, self.convert_type(key),
                  self.convert_type(value), variance == "+")

    # ============================================================
    # Member / Index Converter
    # ============================================================

    def convert_member(self, m: Node) -> Node:
        if m.kind.startswith("ts_"):
            return m
        if m.kind == "obj_prop":
            key, value, optional, variance, method = m.data
            if variance == "-":
                self.warn(f"contravariant field '{key}' has no TypeScript equivalent; marker dropped", m)
            if method:
                return mk("ts_method_sig", m.pos, key, self.convert_function(value), optional)
            return mk("ts_prop_sig", m.pos, key, self.convert_type(value), optional, variance == "+")
        if m.kind == "obj_indexer":
            id, key, value, variance = m.data
            if variance == "-":
                self.warn("contravariant indexer has no TypeScript equivalent; marker dropped", m)
            return mk("ts_index_sig", m.pos, self.index_key_name(id, key),
                      self.convert_type(key), self.convert_type(value), variance == "+")
        if m.kind == "obj_spread":
            return self.convert_type(m.data[0])
        self.fatal(f"unsupported object member '{m.kind}'", m)

    @staticmethod
    def index_key_name(id: Optional[str], key: Node) -> str:
        if id:
            return id
        if key.kind == "type_generic" and key.data[0].kind == "ident":
            return key.data[0].data[0].lower()
        if key.kind == "type_number":
            return "n"
        return "key"

    def convert_body(self, members: List[Node]) -> List[Node]:
        """Members of an interface body, where index signatures stay as they are."""
        out: List[Node] = []
        seen_indexer = False
        for m in members:
            if m.kind == "obj_spread":
                self.warn("spread inside an interface body is dropped", m,
                          "list the spread type in the `extends` clause instead")
                continue
            if m.kind == "obj_indexer":
                if seen_indexer:
                    self.warn("only the first indexer of an object type is kept", m)
                    continue
                seen_indexer = True
            out.append(keep_comments(m, self.convert_member(m)))
        return out

    # ---- function types

    def convert_function(self, node: Node) -> Node:
        if node.kind.startswith("ts_"):
            return node
        tparams, params, rest, ret = node.data
        used = {p.data[0] for p in params if p.data[0]}
        out: List[Node] = []
        for i, p in enumerate(params):
            name, ty, optional = p.data
            if not name:
                name = self.param_name(ty, i, used)
                used.add(name)
            out.append(mk("ts_param", p.pos, name, self.convert_type(ty), optional))
        ts_rest = None
        if rest is not None:
            name = rest.data[0]
            if not name:
                name = "rest" if "rest" not in used else f"arg{len(params)}"
            ts_rest = mk("ts_param", rest.pos, name, self.convert_type(rest.data[1]), False)
        return mk("ts_function", node.pos, self.convert_type_params(tparams), out, ts_rest,
                  self.convert_type(ret))

    @staticmethod
    def param_name(ty: Node, index: int, used: Set[str]) -> str:
        if ty.kind == "type_generic" and ty.data[0].kind == "ident":
            name = ty.data[0].data[0].lower()
            if name not in RESERVED_WORDS and name not in used and re.match(r"^[a-z_$][\w$]*$", name):
                return name
        return f"arg{index}"

    # ============================================================
    # Type Parameter / Argument Converter
    # ============================================================

    def convert_type_params(self, tparams: Optional[Node]) -> Optional[Node]:
        if tparams is None or tparams.kind.startswith("ts_"):
            return tparams
        out = []
        for tp in tparams.data[0]:
            name, bound, default, variance = tp.data
            if variance:
                self.warn(f"variance on type parameter '{name}' has no TypeScript equivalent; dropped", tp)
            out.append(mk("ts_tparam", tp.pos, name,
                          self.convert_type(bound) if bound is not None else None,
                          self.convert_type(default) if default is not None else None))
        return mk("ts_tparams", tparams.pos, out)

    def convert_type_args(self, targs: Optional[Node]) -> Optional[Node]:
        if targs is None or targs.kind.startswith("ts_"):
            return targs
        out = []
        for t in targs.data[0]:
            try:
                out.append(self.convert_type(t))
            except TransformError as e:
                self.warn(f"type argument dropped: {e.msg}", t)
        if not out:
            return None
        return mk("ts_targs", targs.pos, out)

    # ============================================================
    # Declaration Rewriter
    # ============================================================

    def rewrite_declarations(self, tree: Node):
        for holder in [n for n in walk(tree) if n.kind in ("program", "block")]:
            body: List[Node] = []
            for stmt in holder.data[0]:
                body.extend(self._rewrite_statement(stmt))
            holder.data = (body,)

    def _rewrite_statement(self, stmt: Node) -> List[Node]:
        if stmt.kind in ("declare_var", "declare_function", "declare_class"):
            return [stmt.become(self.convert_declaration(stmt))]
        if stmt.kind != "declare_export":
            return [stmt]
        decl, is_default = stmt.data
        if decl.kind not in ("declare_var", "declare_function", "declare_class") \
                or (is_default and decl.kind == "declare_var"):
            self.fatal(f"unsupported declaration '{decl.kind}' in declare export", decl,
                       "only functions, classes and variables can be declared and exported")
        converted = self.convert_declaration(decl)
        if is_default:
            converted.comments = stmt.comments
            converted.blank_before = stmt.blank_before
            export = mk("export_default", stmt.pos, ident(converted.data[0], stmt.pos))
            export.trailing = stmt.trailing
            return [converted, export]
        return [stmt.become(mk("export_named", stmt.pos, converted, [], None, None))]

    def convert_declaration(self, node: Node) -> Node:
        k = node.kind
        if k == "declare_var":
            kind, name, annot = node.data
            annot = self.convert_type(annot) if annot is not None else None
            return mk("ts_declare_var", node.pos, kind, name, annot)
        if k == "declare_function":
            name, annot = node.data
            fn_type = annot.data[0] if annot is not None else None
            if fn_type is None or fn_type.kind not in ("type_function", "ts_function"):
                self.fatal(f"declared function '{name}' must be annotated with a function type",
                           annot or node)
            tparams, params, rest, ret = self.convert_function(fn_type).data
            return mk("ts_declare_function", node.pos, name, tparams, params, rest, ret)
        if k == "declare_class":
            name, tparams, extends, body = node.data
            if len(extends) > 1:
                self.warn(f"declared class '{name}' has {len(extends)} supertypes; only the first is kept",
                          extends[1])
            if body.data[0]:
                self.warn(f"members of declared class '{name}' are dropped", body)
            sup, sup_targs = None, None
            if extends:
                sup, sup_targs = member_expr(extends[0].data[0]), extends[0].data[1]
            return mk("ts_declare_class", node.pos, name, self.convert_type_params(tparams), sup, sup_targs)
        if k.startswith("ts_"):
            return node
        self.fatal(f"unsupported declaration '{k}'", node)

    # ============================================================
    # Statement-Level Passes
    # ============================================================

    def transform_imports(self, tree: Node):
        for n in walk(tree):
            if n.kind == "import":
                kind, specs, source = n.data
                if kind == "typeof":
                    self.warn("`import typeof` has no TypeScript equivalent; imported as a value", n)
                n.data = (None, specs, source)
            elif n.kind == "import_spec":
                imported, local, kind = n.data
                if kind == "typeof":
                    self.warn(f"`typeof {imported}` import has no TypeScript equivalent; imported as a value", n)
                n.data = (imported, local, None)

    def transform_exports(self, tree: Node):
        for n in walk(tree):
            if n.kind == "export_named":
                decl, specs, source, _ = n.data
                n.data = (decl, specs, source, None)

    def transform_declarations(self, tree: Node):
        self.rewrite_declarations(tree)

    def transform_interfaces(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind != "interface":
                continue
            name, tparams, extends, body, declare = n.data
            heritage = [mk("ts_heritage", e.pos, entity(e.data[0]), self.convert_type_args(e.data[1]))
                        for e in extends]
            n.become(mk("ts_interface", n.pos, name, self.convert_type_params(tparams), heritage,
                        self.convert_body(body.data[0]), declare))

    def transform_type_aliases(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind == "type_alias":
                name, tparams, ty, declare = n.data
                n.become(mk("ts_type_alias", n.pos, name, self.convert_type_params(tparams),
                            self.convert_type(ty), declare))
            elif n.kind == "opaque_type":
                name, tparams, supertype, ty, declare = n.data
                self.warn(f"opaque type '{name}' becomes a transparent alias", n)
                if ty is None:
                    ty = supertype if supertype is not None else mk("ts_unknown", n.pos)
                n.become(mk("ts_type_alias", n.pos, name, self.convert_type_params(tparams),
                            self.convert_type(ty), declare))

    def transform_type_casts(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind == "typecast":
                expr, annot = n.data
                n.become(mk("ts_as", n.pos, expr, self.convert_type(annot.data[0])))

    def transform_annotations(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind == "type_annotation":
                n.become(self.convert_type(n))
            elif n.kind == "class_prop" and n.data[4] == "-":
                key, annot, value, static, _, optional = n.data
                self.warn(f"contravariant field '{key}' has no TypeScript equivalent; marker dropped", n)
                n.data = (key, annot, value, static, None, optional)

    def transform_type_parameters(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind == "tparams":
                n.become(self.convert_type_params(n))

    def transform_type_arguments(self, tree: Node):
        for n in list(walk(tree)):
            if n.kind == "iface_ext":
                n.become(mk("ts_heritage", n.pos, entity(n.data[0]), n.data[1]))
        for n in list(walk(tree)):
            if n.kind == "targs":
                n.become(self.convert_type_args(n) or mk("ts_targs", n.pos, []))

    # ============================================================
    # Operator Desugaring
    # ============================================================

    def transform_nullish_coalescing(self, tree: Node):
        self._desugar(tree, "??")

    def transform_optional_chaining(self, tree: Node):
        self._desugar(tree, "?.")

    def _desugar(self, node: Node, op: str, inside: bool = False) -> Node:
        """Rewrite `op` occurrences under `node` bottom-up and return the replacement.

        `inside` is set below a rewritten expression, so only the outermost
        rewrite of a chain carries the review comment."""
        if REVIEW_COMMENT in node.comments:
            inside = True
        if op == "??" and node.kind == "binary" and node.data[0] == "??":
            left = self._desugar(node.data[1], op, True)
            right = self._desugar(node.data[2], op, True)
            out = self._coalesce(left, right, node.pos)
        elif op == "?." and self._optional_link(node) is not None:
            out = self._short_circuit(node, self._optional_link(node))
        else:
            node.data = tuple(self._desugar_data(d, op, inside) for d in node.data)
            return node
        if not inside:
            out.comments.append(REVIEW_COMMENT)
        return out

    def _desugar_data(self, d, op: str, inside: bool):
        if isinstance(d, Node):
            return self._desugar(d, op, inside)
        if isinstance(d, list):
            return [self._desugar(x, op, inside) if isinstance(x, Node) else x for x in d]
        return d

    @staticmethod
    def _coalesce(left: Node, right: Node, pos: int) -> Node:
        # (a !== null && a !== undefined) ? a : b
        test = mk("binary", pos, "&&",
                  mk("binary", pos, "!==", left, mk("null", pos)),
                  mk("binary", pos, "!==", copy.deepcopy(left), ident("undefined", pos)))
        return mk("cond", pos, mk("paren", pos, test), copy.deepcopy(left), right)

    @staticmethod
    def _optional_link(node: Node) -> Optional[Node]:
        """Topmost `?.` link in the member/call chain ending at `node`."""
        cur = node
        while cur.kind in ("member", "call"):
            if cur.data[-1]:
                return cur
            cur = cur.data[0]
        return None

    def _short_circuit(self, node: Node, link: Node) -> Node:
        # (o === null || o === undefined) ? undefined : <chain with o>
        obj = self._desugar(link.data[0], "?.", True)
        chain = self._rebuild_chain(node, link, copy.deepcopy(obj))
        pos = node.pos
        test = mk("binary", pos, "||",
                  mk("binary", pos, "===", obj, mk("null", pos)),
                  mk("binary", pos, "===", copy.deepcopy(obj), ident("undefined", pos)))
        return mk("cond", pos, mk("paren", pos, test), ident("undefined", pos), chain)

    def _rebuild_chain(self, node: Node, link: Node, obj: Node) -> Node:
        if node.kind == "member":
            target, prop, computed, optional = node.data
            if computed:
                prop = self._desugar(prop, "?.", True)
        else:
            target, args, optional = node.data
            args = [self._desugar(a, "?.", True) for a in args]
        if node is link:
            target, optional = obj, False
        else:
            target = self._rebuild_chain(target, link, obj)
        if node.kind == "member":
            return mk("member", node.pos, target, prop, computed, optional)
        return mk("call", node.pos, target, args, optional)

    # ============================================================
    # Pipeline Orchestrator
    # ============================================================

    def run(self, tree: Node) -> Node:
        for name in PASSES:
            getattr(self, "transform_" + name)(tree)
        return tree

PASSES = (
    "imports",
    "exports",
    "declarations",
    "interfaces",
    "type_aliases",
    "type_casts",
    "annotations",
    "type_parameters",
    "type_arguments",
    "nullish_coalescing",
    "optional_chaining",
)

FLOW_PRAGMA = re.compile(r"\A// @flow[^\n]*\n")

def transform(text: str, path: str = "<input>", es: Optional[ErrorSink] = None) -> str:
    """Convert one Flow source file to TypeScript.

    Raises TransformError (or ParseError) when the file cannot be converted;
    lossy conversions are reported as warnings on `es`."""
    src = Source.from_text(text, path)
    es = es if es is not None else ErrorSink()
    tree = parse(src)
    FlowToTs(src, es).run(tree)
    out = FLOW_PRAGMA.sub("", print_tree(tree) + "\n")
    return out.lstrip("\n")

# ============================================================
# Printer
# ============================================================

INDENT = "  "

KEYWORD_TYPES = {
    "ts_any": "any",
    "ts_unknown": "unknown",
    "ts_never": "never",
    "ts_void": "void",
    "ts_null": "null",
    "ts_undefined": "undefined",
    "ts_string": "string",
    "ts_number": "number",
    "ts_boolean": "boolean",
    "ts_bigint": "bigint",
    "ts_symbol": "symbol",
}

TYPE_PREC = {
    "ts_function": 0,
    "ts_union": 1,
    "ts_intersection": 2,
    "ts_keyof": 3,
    "ts_array": 4,
    "ts_indexed": 4,
}

BINARY_PREC = {
    "??": 3, "||": 4, "&&": 5, "|": 6, "^": 7, "&": 8,
    "==": 9, "!=": 9, "===": 9, "!==": 9,
    "<": 10, ">": 10, "<=": 10, ">=": 10, "instanceof": 10, "in": 10,
    "+": 12, "-": 12, "*": 13, "/": 13, "%": 13,
}

def double_quoted(raw: str) -> str:
    if not raw.startswith("'"):
        return raw
    body = raw[1:-1].replace("\\'", "'").replace('"', '\\"')
    return f'"{body}"'

class Printer:
    """Serializes a converted tree as TypeScript source."""

    def print_program(self, tree: Node) -> str:
        lines = self.body(tree.data[0], "")
        if tree.comments:
            if lines:
                lines.append("")
            lines.extend(tree.comments)
        return "\n".join(lines)

    def body(self, stmts: List[Node], ind: str) -> List[str]:
        lines: List[str] = []
        for s in stmts:
            if s.blank_before and lines:
                lines.append("")
            for c in s.comments:
                lines.append(ind + c)
            lines.append(ind + self.stmt(s, ind) + self.trailing(s))
        return lines

    @staticmethod
    def trailing(n: Node) -> str:
        return "".join(" " + c for c in n.trailing)

    def members(self, items: List[Node], ind: str, sep: str, last: str, show) -> str:
        """One member per line between braces, each with its own comments."""
        inner = ind + INDENT
        lines: List[str] = []
        for i, m in enumerate(items):
            lines.extend(inner + c for c in m.comments)
            end = sep if i < len(items) - 1 else last
            lines.append(inner + show(m, inner) + end + self.trailing(m))
        return "{\n" + "\n".join(lines) + "\n" + ind + "}"

    def braced(self, stmts: List[Node], ind: str) -> str:
        if not stmts:
            return "{}"
        inner = self.body(stmts, ind + INDENT)
        return "{\n" + "\n".join(inner) + "\n" + ind + "}"

    # ---- statements

    def stmt(self, s: Node, ind: str) -> str:
        k = s.kind
        if k == "expr_stmt":
            text = self.ex(s.data[0], ind)
            if text.startswith("{") or text.startswith("function") or text.startswith("async function"):
                text = f"({text})"
            return text + ";"
        if k == "var_decl":
            return self.var_decl(s, ind) + ";"
        if k == "function":
            return self.function(s, ind)
        if k == "class":
            return self.class_decl(s, ind)
        if k == "return":
            return "return;" if s.data[0] is None else f"return {self.ex(s.data[0], ind)};"
        if k == "throw":
            return f"throw {self.ex(s.data[0], ind)};"
        if k == "if":
            test, cons, alt = s.data
            out = f"if ({self.ex(test, ind)}) {self.sub_stmt(cons, ind)}"
            if alt is not None:
                out += f" else {self.sub_stmt(alt, ind)}"
            return out
        if k == "while":
            test, body = s.data
            return f"while ({self.ex(test, ind)}) {self.sub_stmt(body, ind)}"
        if k == "block":
            return self.braced(s.data[0], ind)
        if k == "import":
            return self.import_decl(s)
        if k == "export_named":
            decl, specs, source, kind = s.data
            if decl is not None:
                return "export " + self.stmt(decl, ind)
            parts = ", ".join(x.data[0] if x.data[0] == x.data[1] else f"{x.data[0]} as {x.data[1]}"
                              for x in specs)
            out = "export type " if kind == "type" else "export "
            out += "{ " + parts + " }" if parts else "{}"
            if source is not None:
                out += f" from {source}"
            return out + ";"
        if k == "export_default":
            decl = s.data[0]
            if decl.kind in ("function", "class"):
                return "export default " + self.stmt(decl, ind)
            return f"export default {self.ex(decl, ind)};"
        if k == "export_all":
            alias, source = s.data
            return f"export * as {alias} from {source};" if alias else f"export * from {source};"
        if k == "ts_type_alias":
            name, tparams, ty, declare = s.data
            prefix = "declare type " if declare else "type "
            return f"{prefix}{name}{self.tparams(tparams, ind)} = {self.ty(ty, ind)};"
        if k == "ts_interface":
            name, tparams, heritage, members, declare = s.data
            out = ("declare interface " if declare else "interface ") + name + self.tparams(tparams, ind)
            if heritage:
                out += " extends " + ", ".join(self.heritage(h, ind) for h in heritage)
            if not members:
                return out + " {}"
            return out + " " + self.members(members, ind, ";", ";", self.type_member)
        if k == "ts_declare_var":
            kind, name, annot = s.data
            return f"declare {kind} {name}{self.annot(annot, ind)};"
        if k == "ts_declare_function":
            name, tparams, params, rest, ret = s.data
            return (f"declare function {name}{self.tparams(tparams, ind)}"
                    f"({self.sig_params(params, rest, ind)}): {self.ty(ret, ind)};")
        if k == "ts_declare_class":
            name, tparams, sup, sup_targs = s.data
            out = f"declare class {name}{self.tparams(tparams, ind)}"
            if sup is not None:
                out += f" extends {self.ex(sup, ind)}{self.targs(sup_targs, ind)}"
            return out + " {}"
        raise TransformError(f"cannot print untransformed node '{k}'", k, s.pos)

    def sub_stmt(self, s: Optional[Node], ind: str) -> str:
        if s is None:
            return ";"
        return self.stmt(s, ind) + self.trailing(s)

    def import_decl(self, s: Node) -> str:
        kind, specs, source = s.data
        if not specs:
            return f"import {source};"
        parts: List[str] = []
        named: List[str] = []
        for x in specs:
            if x.kind == "import_default":
                parts.append(x.data[0])
            elif x.kind == "import_ns":
                parts.append(f"* as {x.data[0]}")
            else:
                imported, local, spec_kind = x.data
                text = imported if imported == local else f"{imported} as {local}"
                named.append(f"{spec_kind} {text}" if spec_kind else text)
        if named:
            parts.append("{ " + ", ".join(named) + " }")
        prefix = f"import {kind} " if kind else "import "
        return f"{prefix}{', '.join(parts)} from {source};"

    def var_decl(self, s: Node, ind: str) -> str:
        kind, declarators = s.data
        parts = []
        for d in declarators:
            binding, annot, init = d.data
            text = self.binding(binding, ind) + self.annot(annot, ind)
            if init is not None:
                text += " = " + self.ex_p(init, 1, ind)
            parts.append(text)
        return f"{kind} {', '.join(parts)}"

    def function(self, f: Node, ind: str) -> str:
        name, tparams, params, ret, body, is_async, _ = f.data
        out = "async function" if is_async else "function"
        if name:
            out += " " + name
        return out + self.signature(tparams, params, ret, ind) + " " + self.braced(body.data[0], ind)

    def signature(self, tparams, params, ret, ind: str) -> str:
        return f"{self.tparams(tparams, ind)}({self.params(params, ind)}){self.annot(ret, ind)}"

    def class_decl(self, c: Node, ind: str) -> str:
        name, tparams, sup, sup_targs, implements, members = c.data
        out = f"class {name}{self.tparams(tparams, ind)}"
        if sup is not None:
            out += f" extends {self.ex_p(sup, 17, ind)}{self.targs(sup_targs, ind)}"
        if implements:
            out += " implements " + ", ".join(self.heritage(h, ind) for h in implements)
        if not members:
            return out + " {}"
        inner = ind + INDENT
        lines: List[str] = []
        for m in members:
            if m.blank_before and lines:
                lines.append("")
            for c_ in m.comments:
                lines.append(inner + c_)
            lines.append(inner + self.class_member(m, inner) + self.trailing(m))
        return out + " {\n" + "\n".join(lines) + "\n" + ind + "}"

    def class_member(self, m: Node, ind: str) -> str:
        if m.kind == "class_prop":
            key, annot, value, static, variance, optional = m.data
            out = ("static " if static else "") + ("readonly " if variance == "+" else "") + key
            out += ("?" if optional else "") + self.annot(annot, ind)
            if value is not None:
                out += " = " + self.ex_p(value, 1, ind)
            return out + ";"
        if m.kind == "class_method":
            key, fn, static = m.data
            _, tparams, params, ret, body, is_async, _ = fn.data
            out = ("static " if static else "") + ("async " if is_async else "") + key
            return out + self.signature(tparams, params, ret, ind) + " " + self.braced(body.data[0], ind)
        raise TransformError(f"cannot print untransformed node '{m.kind}'", m.kind, m.pos)

    def heritage(self, h: Node, ind: str) -> str:
        if h.kind != "ts_heritage":
            raise TransformError(f"cannot print untransformed node '{h.kind}'", h.kind, h.pos)
        return self.ty(h.data[0], ind) + self.targs(h.data[1], ind)

    # ---- parameters and bindings

    def params(self, params: List[Node], ind: str) -> str:
        out = []
        for p in params:
            binding, annot, optional, default, rest = p.data
            text = ("..." if rest else "") + self.binding(binding, ind)
            text += ("?" if optional else "") + self.annot(annot, ind)
            if default is not None:
                text += " = " + self.ex_p(default, 1, ind)
            out.append(text)
        return ", ".join(out)

    def binding(self, b: Node, ind: str) -> str:
        if b.kind == "ident":
            return b.data[0]
        props = []
        for p in b.data[0]:
            key, target, default, rest = p.data
            if rest:
                props.append("..." + key)
                continue
            text = key if target is None else f"{key}: {self.binding(target, ind)}"
            if default is not None:
                text += " = " + self.ex_p(default, 1, ind)
            props.append(text)
        return "{ " + ", ".join(props) + " }" if props else "{}"

    def annot(self, annot: Optional[Node], ind: str) -> str:
        if annot is None:
            return ""
        if annot.kind != "ts_type_annotation":
            raise TransformError(f"cannot print untransformed node '{annot.kind}'", annot.kind, annot.pos)
        return ": " + self.ty(annot.data[0], ind)

    # ---- types

    def ty(self, t: Node, ind: str) -> str:
        k = t.kind
        if k in KEYWORD_TYPES:
            return KEYWORD_TYPES[k]
        if k == "ts_literal":
            return double_quoted(t.data[0])
        if k == "ts_union":
            return " | ".join(self.ty_p(x, 2, ind) for x in t.data[0])
        if k == "ts_intersection":
            return " & ".join(self.ty_p(x, 3, ind) for x in t.data[0])
        if k == "ts_array":
            return self.ty_p(t.data[0], 4, ind) + "[]"
        if k == "ts_tuple":
            return "[" + ", ".join(self.ty(x, ind) for x in t.data[0]) + "]"
        if k == "ts_keyof":
            return "keyof " + self.ty_p(t.data[0], 3, ind)
        if k == "ts_indexed":
            return f"{self.ty_p(t.data[0], 4, ind)}[{self.ty(t.data[1], ind)}]"
        if k == "ts_typeof":
            return "typeof " + self.ty(t.data[0], ind)
        if k == "ts_type_ref":
            return self.ty(t.data[0], ind) + self.targs(t.data[1], ind)
        if k == "ident":
            return t.data[0]
        if k == "ts_qualified":
            return f"{self.ty(t.data[0], ind)}.{t.data[1]}"
        if k == "ts_function":
            tparams, params, rest, ret = t.data
            return f"{self.tparams(tparams, ind)}({self.sig_params(params, rest, ind)}) => {self.ty(ret, ind)}"
        if k == "ts_type_literal":
            members = t.data[0]
            if not members:
                return "{}"
            return self.members(members, ind, ",", "", self.type_member)
        if k == "ts_mapped":
            name, constraint, value, readonly = t.data
            prefix = "readonly " if readonly else ""
            return f"{{ {prefix}[{name} in {self.ty(constraint, ind)}]: {self.ty(value, ind)} }}"
        raise TransformError(f"cannot print untransformed node '{k}'", k, t.pos)

    def ty_p(self, t: Node, min_prec: int, ind: str) -> str:
        text = self.ty(t, ind)
        if TYPE_PREC.get(t.kind, 5) < min_prec:
            return f"({text})"
        return text

    def type_member(self, m: Node, ind: str) -> str:
        k = m.kind
        if k == "ts_prop_sig":
            key, ty, optional, readonly = m.data
            return f"{'readonly ' if readonly else ''}{key}{'?' if optional else ''}: {self.ty(ty, ind)}"
        if k == "ts_method_sig":
            key, fn, optional = m.data
            tparams, params, rest, ret = fn.data
            return (f"{key}{'?' if optional else ''}{self.tparams(tparams, ind)}"
                    f"({self.sig_params(params, rest, ind)}): {self.ty(ret, ind)}")
        if k == "ts_index_sig":
            name, key, value, readonly = m.data
            return f"{'readonly ' if readonly else ''}[{name}: {self.ty(key, ind)}]: {self.ty(value, ind)}"
        raise TransformError(f"cannot print untransformed node '{k}'", k, m.pos)

    def sig_params(self, params: List[Node], rest: Optional[Node], ind: str) -> str:
        out = [f"{p.data[0]}{'?' if p.data[2] else ''}: {self.ty(p.data[1], ind)}" for p in params]
        if rest is not None:
            out.append(f"...{rest.data[0]}: {self.ty(rest.data[1], ind)}")
        return ", ".join(out)

    def tparams(self, tparams: Optional[Node], ind: str) -> str:
        if tparams is None:
            return ""
        if tparams.kind != "ts_tparams":
            raise TransformError(f"cannot print untransformed node '{tparams.kind}'", tparams.kind, tparams.pos)
        out = []
        for tp in tparams.data[0]:
            name, constraint, default = tp.data
            text = name
            if constraint is not None:
                text += " extends " + self.ty(constraint, ind)
            if default is not None:
                text += " = " + self.ty(default, ind)
            out.append(text)
        return "<" + ", ".join(out) + ">"

    def targs(self, targs: Optional[Node], ind: str) -> str:
        if targs is None or (targs.kind == "ts_targs" and not targs.data[0]):
            return ""
        if targs.kind != "ts_targs":
            raise TransformError(f"cannot print untransformed node '{targs.kind}'", targs.kind, targs.pos)
        return "<" + ", ".join(self.ty(t, ind) for t in targs.data[0]) + ">"

    # ---- expressions

    def prec(self, e: Node) -> int:
        k = e.kind
        if k in ("assign", "arrow"):
            return 1
        if k == "cond":
            return 2
        if k == "binary":
            return BINARY_PREC[e.data[0]]
        if k == "ts_as":
            return 10
        if k == "unary" or (k == "update" and e.data[2]):
            return 15
        if k == "update":
            return 16
        if k == "new" and e.data[2] is None:
            return 16
        if k in ("member", "call", "new"):
            return 17
        return 18

    def ex_p(self, e: Node, min_prec: int, ind: str) -> str:
        text = self.ex(e, ind)
        if self.prec(e) < min_prec:
            text = f"({text})"
        return text

    def ex(self, e: Node, ind: str) -> str:
        text = self._ex(e, ind)
        if e.comments:
            text = " ".join(e.comments) + " " + text
        return text

    def _ex(self, e: Node, ind: str) -> str:
        k = e.kind
        if k == "ident":
            return e.data[0]
        if k in ("num", "str"):
            return e.data[0]
        if k == "template":
            quasis, exprs = e.data
            parts = [quasis[0]]
            for x, q in zip(exprs, quasis[1:]):
                parts.append("${" + self.ex(x, ind) + "}" + q)
            return "`" + "".join(parts) + "`"
        if k == "this":
            return "this"
        if k == "null":
            return "null"
        if k == "bool":
            return "true" if e.data[0] else "false"
        if k == "paren":
            return f"({self.ex(e.data[0], ind)})"
        if k == "binary":
            op, left, right = e.data
            p = BINARY_PREC[op]
            return f"{self.ex_p(left, p, ind)} {op} {self.ex_p(right, p + 1, ind)}"
        if k == "cond":
            test, cons, alt = e.data
            return f"{self.ex_p(test, 3, ind)} ? {self.ex_p(cons, 1, ind)} : {self.ex_p(alt, 1, ind)}"
        if k == "assign":
            op, target, value = e.data
            return f"{self.ex_p(target, 3, ind)} {op} {self.ex_p(value, 1, ind)}"
        if k == "unary":
            op, arg = e.data
            text = self.ex_p(arg, 15, ind)
            if op.isalpha() or (op in "+-" and text.startswith(op)):
                return f"{op} {text}"
            return op + text
        if k == "update":
            op, arg, prefix = e.data
            return op + self.ex_p(arg, 15, ind) if prefix else self.ex_p(arg, 17, ind) + op
        if k == "member":
            obj, prop, computed, optional = e.data
            text = self.ex_p(obj, 17, ind)
            if computed:
                return f"{text}{'?.' if optional else ''}[{self.ex(prop, ind)}]"
            return f"{text}{'?.' if optional else '.'}{prop}"
        if k == "call":
            callee, args, optional = e.data
            return f"{self.ex_p(callee, 17, ind)}{'?.' if optional else ''}({self.args(args, ind)})"
        if k == "new":
            callee, targs, args = e.data
            text = self.ex_p(callee, 17, ind)
            if callee.kind == "call":
                text = f"({text})"
            out = "new " + text + self.targs(targs, ind)
            return out if args is None else f"{out}({self.args(args, ind)})"
        if k == "spread":
            return "..." + self.ex_p(e.data[0], 1, ind)
        if k == "array":
            return "[" + self.args(e.data[0], ind) + "]"
        if k == "object":
            props = e.data[0]
            if not props:
                return "{}"
            return self.members(props, ind, ",", "", self.obj_prop)
        if k == "function":
            return self.function(e, ind)
        if k == "arrow":
            tparams, params, ret, body, is_async = e.data
            out = ("async " if is_async else "") + self.signature(tparams, params, ret, ind) + " => "
            if body.kind == "block":
                return out + self.braced(body.data[0], ind)
            text = self.ex_p(body, 1, ind)
            if text.startswith("{"):
                text = f"({text})"
            return out + text
        if k == "ts_as":
            expr, ty = e.data
            return f"{self.ex_p(expr, 11, ind)} as {self.ty(ty, ind)}"
        raise TransformError(f"cannot print untransformed node '{k}'", k, e.pos)

    def args(self, args: List[Node], ind: str) -> str:
        return ", ".join(self.ex_p(a, 1, ind) for a in args)

    def obj_prop(self, p: Node, ind: str) -> str:
        if p.kind == "spread":
            return self.ex(p, ind)
        if p.kind == "obj_method":
            key, fn = p.data
            _, tparams, params, ret, body, is_async, _ = fn.data
            out = ("async " if is_async else "") + key
            return out + self.signature(tparams, params, ret, ind) + " " + self.braced(body.data[0], ind)
        key, value, computed, shorthand = p.data
        if shorthand:
            return key
        key_text = f"[{self.ex(key, ind)}]" if computed else key
        return f"{key_text}: {self.ex_p(value, 1, ind)}"

def print_tree(tree: Node) -> str:
    return Printer().print_program(tree)

# ============================================================
# Driver
# ============================================================

# mode -> (input suffix, output suffix)
OUTPUT_MODES = {
    "ts": (".js", ".ts"),
    "tsx": (".js", ".tsx"),
    "d.ts": (".js.flow", ".d.ts"),
    "tsxFromJsx": (".jsx", ".tsx"),
}

USAGE = """\
Convert Flow annotated JavaScript into TypeScript.

flowts -o MODE [--dry] [--no-color] PATH...

Options:
  -o, --output MODE   one of: ts, tsx, d.ts, tsxFromJsx
  --dry               print the converted source instead of writing files
  --no-color          plain diagnostics

Pick "ts" for regular .js files, "tsx" for .js files containing JSX,
"d.ts" for .js.flow declaration files and "tsxFromJsx" for .jsx files.
Directories are searched recursively; node_modules is skipped.
"""

def find_inputs(paths: List[str], suffix: str) -> List[str]:
    found: List[str] = []
    for p in paths:
        if os.path.isdir(p):
            for root, dirs, files in os.walk(p):
                dirs[:] = sorted(d for d in dirs if d != "node_modules")
                found.extend(os.path.join(root, f) for f in sorted(files) if f.endswith(suffix))
        elif p.endswith(suffix):
            found.append(p)
        else:
            print(f"skipping non-{suffix} file: {p}", file=sys.stderr)
    return found

def output_path(path: str, mode: str) -> str:
    suffix_in, suffix_out = OUTPUT_MODES[mode]
    return path[: -len(suffix_in)] + suffix_out

def convert_file(path: str, mode: str, dry: bool = False, use_color: bool = True) -> bool:
    # with --dry stdout carries only converted source
    status = sys.stderr if dry else sys.stdout
    es = ErrorSink()
    src = Source.from_text("", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            src = Source.from_text(f.read(), path)
        out = transform(src.text, path, es)
        if not dry:
            target = output_path(path, mode)
            with open(target, "w", encoding="utf-8") as f:
                f.write(out)
    except TransformError as e:
        es.errors.append(e.diag(src))
    except (UnicodeDecodeError, OSError) as e:
        es.error(f"cannot convert file: {e}", src, 0)
    es.dump(use_color)
    if not es.ok():
        print(f"{path}: failed", file=status)
        return False
    if dry:
        print(out, end="")
    else:
        print(f"{path} -> {target}", file=status)
    return True

def run_cli(argv: List[str]) -> int:
    mode: Optional[str] = None
    dry = False
    use_color = sys.stderr.isatty()
    paths: List[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("-h", "--help"):
            print(USAGE)
            return 0
        if arg in ("-o", "--output"):
            if i + 1 >= len(argv):
                print("error: -o/--output requires a mode")
                return 2
            mode = argv[i + 1]
            i += 2
            continue
        if arg == "--dry":
            dry = True
        elif arg == "--no-color":
            use_color = False
        elif arg.startswith("-"):
            print(f"error: unknown option '{arg}'")
            print(USAGE)
            return 2
        else:
            paths.append(arg)
        i += 1

    if mode not in OUTPUT_MODES:
        print(f"error: output mode must be one of: {', '.join(OUTPUT_MODES)}")
        print(USAGE)
        return 2
    if not paths:
        print("error: no input paths")
        return 2

    files = find_inputs(paths, OUTPUT_MODES[mode][0])
    if not files:
        print(f"error: no {OUTPUT_MODES[mode][0]} inputs")
        return 2

    failed = [p for p in files if not convert_file(p, mode, dry, use_color)]
    print(f"{len(files) - len(failed)} converted, {len(failed)} failed",
          file=sys.stderr if dry else sys.stdout)
    return 1 if failed else 0

def main():
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
