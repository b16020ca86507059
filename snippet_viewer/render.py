"""
Rendering collaborators for viewers.

Viewers emit RenderInstruction objects; renderers turn them into terminal
output or HTML. Syntax highlighting goes through Pygments and is optional:
an unknown language degrades to the plain source text, never to an error.
"""

from __future__ import annotations

import html
import logging
import sys
from functools import lru_cache
from typing import IO, Any, List, Optional, Protocol

from pygments import highlight as pygments_highlight
from pygments.formatter import Formatter as PygmentsFormatter
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from .config.models import DEFAULT_THEME, theme_style
from .exceptions import RenderingDegraded
from .models import RenderInstruction, RenderKind

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Receives the render instructions emitted by a viewer."""

    def render(self, instruction: RenderInstruction) -> None: ...


@lru_cache(maxsize=64)
def _lexer_for(language: str) -> Optional[Lexer]:
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        return None


def _resolve_style(theme: Optional[str]) -> str:
    style = theme_style(theme)
    try:
        get_style_by_name(style)
    except ClassNotFound:
        logger.warning(f"Pygments style {style!r} unavailable, using default")
        return theme_style(DEFAULT_THEME)
    return style


class Highlighter:
    """Syntax highlighting backed by Pygments."""

    def supports(self, language: Optional[str]) -> bool:
        return bool(language) and _lexer_for(language) is not None

    def highlight(
        self, source: str, language: Optional[str], formatter: PygmentsFormatter
    ) -> str:
        """
        Highlight ``source`` as ``language`` with the given formatter.

        Raises:
            RenderingDegraded: If no lexer exists for the language
        """
        lexer = _lexer_for(language) if language else None
        if lexer is None:
            raise RenderingDegraded(
                f"No highlighter available for language {language!r}", language
            )
        return pygments_highlight(source, lexer, formatter)


class HtmlRenderer:
    """
    Renders instructions to an HTML fragment.

    The last fragment is available as ``markup``; ``stylesheet()`` returns
    the CSS for the configured theme.
    """

    def __init__(self, highlighter: Optional[Highlighter] = None, css_class: str = "snippet-viewer") -> None:
        self.highlighter = highlighter or Highlighter()
        self.css_class = css_class
        self.markup = ""
        self.degraded = False

    def stylesheet(self, theme: Optional[str] = None) -> str:
        formatter = HtmlFormatter(style=_resolve_style(theme))
        return formatter.get_style_defs(f".{self.css_class} .code-wrapper")

    def render(self, instruction: RenderInstruction) -> None:
        self.degraded = False
        match instruction.kind:
            case RenderKind.CODE:
                language = instruction.language or ""
                pre_class = f"line-numbers language-{language}"
                code_class = f"language-{language}"
                body = self._highlight(instruction.text, instruction.language)
            case RenderKind.ERROR:
                pre_class, code_class = "error", ""
                body = html.escape(instruction.text)
            case _:
                pre_class, code_class = "loading", ""
                body = html.escape(instruction.text)

        theme = html.escape(instruction.theme or DEFAULT_THEME, quote=True)
        code_attr = f' class="{code_class}"' if code_class else ""
        self.markup = (
            f'<div class="{self.css_class}" data-theme="{theme}">'
            f'<div class="header"><span class="filename">{html.escape(instruction.title)}</span></div>'
            f'<div class="code-wrapper"><pre class="{pre_class}"><code{code_attr}>{body}</code></pre></div>'
            f"</div>"
        )

    def _highlight(self, source: str, language: Optional[str]) -> str:
        try:
            return self.highlighter.highlight(source, language, HtmlFormatter(nowrap=True))
        except RenderingDegraded as e:
            logger.warning(f"Rendering degraded to plain text: {e.message}")
            self.degraded = True
            return html.escape(source)


class ConsoleRenderer:
    """Renders instructions to a terminal through rich."""

    def __init__(
        self,
        console: Optional[Console] = None,
        highlighter: Optional[Highlighter] = None,
        show_loading: bool = False,
        line_numbers: bool = True,
    ) -> None:
        self.console = console or Console()
        self.highlighter = highlighter or Highlighter()
        self.show_loading = show_loading
        self.line_numbers = line_numbers

    def render(self, instruction: RenderInstruction) -> None:
        match instruction.kind:
            case RenderKind.CODE:
                language = instruction.language
                if not self.highlighter.supports(language):
                    logger.warning(f"No highlighter for {language!r}, showing plain text")
                    language = "text"
                syntax = Syntax(
                    instruction.text,
                    language,
                    theme=_resolve_style(instruction.theme),
                    line_numbers=self.line_numbers,
                )
                self.console.print(Panel(syntax, title=instruction.title, title_align="left"))
            case RenderKind.ERROR:
                self.console.print(
                    Panel(Text(instruction.text, style="red"), title="Error", border_style="red")
                )
            case RenderKind.LOADING:
                if self.show_loading:
                    self.console.print(Text(instruction.text, style="dim"))


class PlainRenderer:
    """Writes code bodies and errors as plain text."""

    def __init__(
        self, stream: Optional[IO[str]] = None, error_stream: Optional[IO[str]] = None
    ) -> None:
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr

    def render(self, instruction: RenderInstruction) -> None:
        if instruction.kind is RenderKind.CODE:
            self.stream.write(instruction.text)
            if not instruction.text.endswith("\n"):
                self.stream.write("\n")
        elif instruction.kind is RenderKind.ERROR:
            self.error_stream.write(f"{instruction.text}\n")


class RecordingRenderer:
    """Keeps every instruction it receives, most recent last."""

    def __init__(self) -> None:
        self.instructions: List[RenderInstruction] = []

    def render(self, instruction: RenderInstruction) -> None:
        self.instructions.append(instruction)

    @property
    def last(self) -> Optional[RenderInstruction]:
        return self.instructions[-1] if self.instructions else None

    def kinds(self) -> List[Any]:
        return [instruction.kind for instruction in self.instructions]
