"""Operator-defined unit tag rules.

A rule pairs a match expression with an alias template:

- ``/expr/`` uses ``expr`` verbatim as a regular expression
- anything else is a literal ID, anchored so ``123`` matches only ``123``

Templates may reference capture groups with ``\\1``, ``\\g<name>``, ``$1``,
``${1}`` or ``$&`` (whole match). A template without references is a
constant alias. Any other backslash escapes the next character, so ``\\\\``
is a literal backslash and ``Fire\\Rescue`` reads as ``FireRescue``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from unittags.errors import PatternError

# $$, $&, $0-$99, ${name}, or a backslash escape
_TEMPLATE_TOKEN = re.compile(
    r"\$(\$|&|\d{1,2}|\{(\w+)\})|\\(g<(\w+)>|\d{1,2}|.?)", re.DOTALL
)
# Group references in re.Match.expand syntax; escaped backslashes are consumed first
_GROUP_REF = re.compile(r"\\(?:\\|g<(\w+)>|(\d{1,2}))")


def _translate_template(template: str) -> str:
    """Rewrite a rule template into re.Match.expand syntax.

    The result holds no backslash other than ``\\g<...>`` references and
    escaped literal backslashes, so expanding it cannot fail on a bad escape.
    """

    def repl(m: re.Match[str]) -> str:
        token = m.group(1)
        if token is not None:
            if token == "$":
                return "$"
            if token == "&":
                return r"\g<0>"
            if m.group(2) is not None:
                return rf"\g<{m.group(2)}>"
            return rf"\g<{int(token)}>"

        escaped = m.group(3)
        if m.group(4) is not None:
            return rf"\g<{m.group(4)}>"
        if escaped.isdigit():
            return rf"\g<{int(escaped)}>"
        if escaped in ("", "\\"):
            # Lone trailing backslash or an escaped one
            return "\\\\"
        return escaped

    return _TEMPLATE_TOKEN.sub(repl, template)


def _group_refs(template: str) -> list[str]:
    """Group names or numbers referenced by an expand-syntax template."""
    refs = []
    for m in _GROUP_REF.finditer(template):
        ref = m.group(1) or m.group(2)
        if ref:
            refs.append(ref)
    return refs


def is_regex_pattern(raw: str) -> bool:
    """True if the pattern is written in /.../ form."""
    return len(raw) >= 2 and raw.startswith("/") and raw.endswith("/")


@dataclass(frozen=True)
class TagRule:
    """Compiled rule: full-match expression plus alias template."""
    raw: str
    pattern: re.Pattern[str]
    template: str

    @property
    def is_constant(self) -> bool:
        """True if the template has no capture references."""
        return not _group_refs(self.template)

    def match(self, text: str) -> bool:
        return self.pattern.fullmatch(text) is not None

    def rewrite(self, text: str) -> str:
        """Substitute captured groups of ``text`` into the template."""
        m = self.pattern.fullmatch(text)
        if m is None:
            return ""
        try:
            return m.expand(self.template)
        except (re.error, IndexError) as e:
            raise PatternError(f"Bad template {self.template!r} for {self.raw!r}: {e}") from e

    def apply(self, text: str) -> str | None:
        """Return the rewritten alias if ``text`` matches, else None."""
        if not self.match(text):
            return None
        return self.rewrite(text)


def compile_rule(raw_pattern: str, template: str) -> TagRule:
    """Compile one rule row into a TagRule.

    Raises:
        PatternError: if the expression is empty or does not compile, or the
            template references a group the expression does not define
    """
    raw = raw_pattern.strip()
    if is_regex_pattern(raw):
        expr = raw[1:-1]
    else:
        expr = f"^{re.escape(raw)}$"

    if not expr or expr == "^$":
        raise PatternError(f"Empty unit tag pattern: {raw_pattern!r}")

    try:
        compiled = re.compile(expr)
    except re.error as e:
        raise PatternError(f"Invalid unit tag pattern {raw!r}: {e}") from e

    expanded = _translate_template(template.strip())
    for ref in _group_refs(expanded):
        if ref.isdigit():
            if int(ref) > compiled.groups:
                raise PatternError(f"Template {template!r} references missing group {ref} in {raw!r}")
        elif ref not in compiled.groupindex:
            raise PatternError(f"Template {template!r} references unknown group {ref!r} in {raw!r}")

    return TagRule(raw=raw, pattern=compiled, template=expanded)


def compile_literal_rule(identifier: str, alias: str) -> TagRule:
    """Rule matching exactly ``identifier`` and yielding ``alias`` verbatim."""
    raw = identifier.strip()
    if not raw:
        raise PatternError("Empty unit tag identifier")
    return TagRule(
        raw=raw,
        pattern=re.compile(f"^{re.escape(raw)}$"),
        template=alias.replace("\\", "\\\\"),
    )
