"""Files assembled from a header, ordered fragments and a footer."""

from typing import Any, Self

from jinja2 import Environment, StrictUndefined
from pydantic import BaseModel, Field, PrivateAttr

_environment = Environment(
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Render a Jinja2 template string with ``variables``."""
    return _environment.from_string(template).render(**variables)


class Fragment(BaseModel):
    """A piece of file content placed by its numeric order key.

    Attributes:
        name: Identifies the fragment in errors and logs
        order: Position between header and footer; lower comes first
        template: Jinja2 template rendered with the owning file's variables
    """

    name: str
    order: int = 50
    template: str


class FragmentFile(BaseModel):
    """Header first, then fragments sorted by order, then footer.

    Fragments with equal order keep the order they were added in. The header
    and footer frame the file no matter what order keys fragments use.

    Example:
        >>> profile = FragmentFile(
        ...     header="# managed for {{ user }}\\n",
        ...     footer="# end\\n",
        ...     variables={"user": "alice"},
        ... )
        >>> _ = profile.add(Fragment(name="editor", order=20, template="export EDITOR=vim\\n"))
        >>> profile.render().decode()
        '# managed for alice\\nexport EDITOR=vim\\n# end\\n'
    """

    header: str = ""
    footer: str = ""
    variables: dict[str, Any] = Field(default_factory=dict)
    fragments: list[Fragment] = Field(default_factory=list)

    _cache: bytes | None = PrivateAttr(default=None)

    def add(self, *fragments: Fragment) -> Self:
        """Add fragments (chainable)."""
        self.fragments.extend(fragments)
        self._cache = None
        return self

    def ordered_fragments(self) -> list[Fragment]:
        return sorted(self.fragments, key=lambda f: f.order)

    def render(self) -> bytes:
        if self._cache is None:
            parts = [render_template(self.header, self.variables)]
            for fragment in self.ordered_fragments():
                text = render_template(fragment.template, self.variables)
                if text and not text.endswith("\n"):
                    text += "\n"
                parts.append(text)
            parts.append(render_template(self.footer, self.variables))
            self._cache = "".join(parts).encode("utf-8")
        return self._cache
