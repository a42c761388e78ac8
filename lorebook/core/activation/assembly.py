"""
Injection Block Assembly
========================

Renders the included entries of a turn into the text block handed to prompt
assembly. With titles on, each entry reads::

    [Title] (priority: 150) - matched keywords: dragon, old king
    Content...

An optional header opens the block and an optional footer closes it; the
footer is a template with ``{count}`` and ``{tokens}`` placeholders.
"""

from dataclasses import dataclass

DEFAULT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class InjectionEntry:
    """One rule's contribution to the injection block."""

    rule_id: str
    title: str
    content: str
    token_weight: int
    order: int
    always_active: bool
    reason: str
    matched_keywords: tuple[str, ...] = ()


class InjectionAssembler:
    def __init__(
        self,
        separator: str = DEFAULT_SEPARATOR,
        include_titles: bool = False,
        header: str | None = None,
        footer: str | None = None,
    ):
        self.separator = separator
        self.include_titles = include_titles
        self.header = header or None
        self.footer = footer or None

    def render_entry(self, entry: InjectionEntry) -> str:
        content = entry.content.strip()
        if not self.include_titles:
            return content

        heading = f"[{entry.title or f'Rule {entry.rule_id}'}] (priority: {entry.order})"
        if entry.matched_keywords:
            heading += f" - matched keywords: {', '.join(entry.matched_keywords)}"
        return f"{heading}\n{content}"

    def render_footer(self, entries: list[InjectionEntry]) -> str:
        tokens = sum(e.token_weight for e in entries)
        return self.footer.format(count=len(entries), tokens=tokens)

    def assemble(self, entries: list[InjectionEntry]) -> str:
        """Join rendered entries; an empty turn yields "" even with a header or footer."""
        if not entries:
            return ""

        parts = [self.render_entry(entry) for entry in entries]
        if self.header:
            parts.insert(0, self.header)
        if self.footer:
            parts.append(self.render_footer(entries))
        return self.separator.join(parts)
