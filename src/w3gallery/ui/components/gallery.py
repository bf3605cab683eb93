"""Gallery card rendering."""

from jinja2 import Environment, PackageLoader, select_autoescape

from ...models.post import Post

_environment = Environment(
    loader=PackageLoader("w3gallery", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_card(post: Post, editable: bool = False) -> str:
    """
    Render the album card of a post.

    Captions are user text and are escaped; the photo URL is escaped as an
    attribute value.

    Args:
        post: Post to render
        editable: Whether to include the edit/delete buttons

    Returns:
        str: Card markup ready to append to ``gallery-album``
    """
    return _environment.get_template("card.html").render(post=post, editable=editable)
