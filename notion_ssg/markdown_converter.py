"""
Notion blocks to Markdown converter.

Produces the raw body of a page. Image and page links keep their Notion
URLs here; the LinkRewriter localizes them once every source has been
enumerated.
"""

from typing import Callable, Optional

from .notion_api import NotionBlock

LIST_TYPES = {"bulleted_list_item", "numbered_list_item", "to_do"}

# Notion language names → fenced code info strings
CODE_LANGUAGES = {
    "plain text": "",
    "c++": "cpp",
    "c#": "csharp",
    "shell": "bash",
    "f#": "fsharp",
    "objective-c": "objectivec",
}


def notion_page_url(page_id: str) -> str:
    return f"https://www.notion.so/{page_id.replace('-', '')}"


def _media_url(content: dict) -> Optional[str]:
    kind = content.get("type")
    if kind in ("external", "file"):
        return (content.get(kind) or {}).get("url")
    return None


class MarkdownConverter:
    """
    Renders a tree of NotionBlocks as a Markdown body.

    Nested children are indented under list items and wrapped in toggles.
    """

    def __init__(self):
        self._handlers: dict[str, Callable[[NotionBlock], Optional[str]]] = {
            "paragraph": self._paragraph,
            "heading_1": self._heading,
            "heading_2": self._heading,
            "heading_3": self._heading,
            "bulleted_list_item": self._list_item,
            "numbered_list_item": self._list_item,
            "to_do": self._list_item,
            "toggle": self._toggle,
            "code": self._code,
            "quote": self._quote,
            "callout": self._callout,
            "divider": lambda block: "---",
            "image": self._image,
            "video": self._video,
            "embed": self._bookmark,
            "bookmark": self._bookmark,
            "link_preview": self._bookmark,
            "table": self._table,
            "column_list": self._column_list,
            "child_page": self._child_page,
            "child_database": self._child_database,
            "synced_block": self._passthrough,
            "column": self._passthrough,
            "equation": lambda block: f"$$\n{block.content.get('expression', '')}\n$$",
            "file": self._attachment,
            "pdf": self._attachment,
            "audio": self._attachment,
            "breadcrumb": lambda block: None,
            "table_of_contents": lambda block: None,
        }

    def convert(self, blocks: list[NotionBlock]) -> str:
        """
        Convert a page's blocks to a Markdown body.

        Returns:
            Markdown text ending in a single newline (empty string for no content).
        """
        content = self._render_sequence(blocks)
        return self._normalize_whitespace(content)

    def _render_sequence(self, blocks: list[NotionBlock]) -> str:
        # List numbering lives in this frame; one converter serves every worker thread.
        lines = []
        prev_type = None
        number = 0

        for block in blocks:
            if prev_type and self._needs_spacing(prev_type, block.type):
                lines.append("")

            number = number + 1 if block.type == "numbered_list_item" else 0

            handler = self._handlers.get(block.type)
            if handler is None:
                markdown = f"<!-- Unsupported block type: {block.type} -->"
            elif block.type == "numbered_list_item":
                markdown = self._list_item(block, number)
            else:
                markdown = handler(block)

            if markdown is not None:
                lines.append(markdown)
            prev_type = block.type

        return "\n".join(lines)

    def _children(self, block: NotionBlock, indent: int = 0) -> str:
        if not block.children:
            return ""
        text = self._render_sequence(block.children)
        if not indent:
            return text
        pad = " " * indent
        return "\n".join(f"{pad}{line}" if line else line for line in text.split("\n"))

    # =========================================================================
    # Rich text
    # =========================================================================

    def rich_text(self, rich_text: list[dict]) -> str:
        """Convert a Notion rich text array to inline Markdown."""
        parts = []
        for item in rich_text or []:
            content = item.get("plain_text", "")
            annotations = item.get("annotations") or {}
            href = item.get("href")

            if item.get("type") == "equation":
                content = f"${item.get('equation', {}).get('expression', content)}$"
            if item.get("type") == "mention" and not href:
                mentioned = (item.get("mention") or {}).get("page") or {}
                if mentioned.get("id"):
                    href = notion_page_url(mentioned["id"])

            if content.strip():
                if annotations.get("code"):
                    content = f"`{content}`"
                if annotations.get("bold"):
                    content = f"**{content}**"
                if annotations.get("italic"):
                    content = f"*{content}*"
                if annotations.get("strikethrough"):
                    content = f"~~{content}~~"
                if annotations.get("underline"):
                    content = f"<u>{content}</u>"

            if href:
                content = f"[{content}]({href})"

            parts.append(content)

        return "".join(parts)

    def _text(self, block: NotionBlock, key: str = "rich_text") -> str:
        return self.rich_text(block.content.get(key, []))

    def _caption(self, block: NotionBlock) -> str:
        caption = self._text(block, "caption")
        return f"\n*{caption}*" if caption else ""

    # =========================================================================
    # Block handlers
    # =========================================================================

    def _paragraph(self, block: NotionBlock) -> str:
        text = self._text(block)
        children = self._children(block, indent=2)
        return f"{text}\n{children}" if children else text

    def _heading(self, block: NotionBlock) -> str:
        level = int(block.type[-1])
        return f"{'#' * level} {self._text(block)}"

    def _list_item(self, block: NotionBlock, number: int = 1) -> str:
        text = self._text(block)

        if block.type == "numbered_list_item":
            marker = f"{number}."
        elif block.type == "to_do":
            marker = "- [x]" if block.content.get("checked") else "- [ ]"
        else:
            marker = "-"

        children = self._children(block, indent=2)
        result = f"{marker} {text}"
        return f"{result}\n{children}" if children else result

    def _toggle(self, block: NotionBlock) -> str:
        children = self._children(block)
        body = f"\n{children}\n" if children else ""
        return f"<details>\n<summary>{self._text(block)}</summary>\n{body}</details>"

    def _code(self, block: NotionBlock) -> str:
        code = "".join(part.get("plain_text", "") for part in block.content.get("rich_text", []))
        language = block.content.get("language", "").lower()
        lang = CODE_LANGUAGES.get(language, language)
        return f"```{lang}\n{code}\n```{self._caption(block)}"

    def _quote(self, block: NotionBlock, prefix: str = "") -> str:
        text = self._text(block)
        children = self._children(block)
        if children:
            text = f"{text}\n{children}"
        lines = text.split("\n")
        lines[0] = f"{prefix}{lines[0]}"
        return "\n".join(f"> {line}".rstrip() for line in lines)

    def _callout(self, block: NotionBlock) -> str:
        icon = block.content.get("icon") or {}
        emoji = icon.get("emoji", "") if icon.get("type") == "emoji" else ""
        return self._quote(block, prefix=f"{emoji} " if emoji else "")

    def _image(self, block: NotionBlock) -> str:
        url = _media_url(block.content)
        if not url:
            return "<!-- Image URL not found -->"

        caption = self._text(block, "caption")
        return f"![{caption or 'Image'}]({url})"

    def _video(self, block: NotionBlock) -> str:
        url = _media_url(block.content)
        if not url:
            return "<!-- Video URL not found -->"
        return f"[Video]({url}){self._caption(block)}"

    def _bookmark(self, block: NotionBlock) -> str:
        url = block.content.get("url", "")
        title = self._text(block, "caption") or url
        return f"[{title}]({url})"

    def _attachment(self, block: NotionBlock) -> str:
        url = _media_url(block.content)
        if not url:
            return f"<!-- {block.type} not found -->"

        label = block.content.get("name") or self._text(block, "caption")
        if not label:
            label = {"pdf": "PDF Document", "audio": "Audio"}.get(block.type, "File")
        return f"[{label}]({url})"

    def _table(self, block: NotionBlock) -> str:
        rows = [child for child in block.children if child.type == "table_row"]
        if not rows:
            return "<!-- Empty table -->"

        lines = []
        for i, row in enumerate(rows):
            cells = [self.rich_text(cell).replace("|", "\\|") for cell in row.content.get("cells", [])]
            lines.append(f"| {' | '.join(cells)} |")
            if i == 0:
                # Markdown tables need a header row; without one the first row serves
                lines.append(f"| {' | '.join('---' for _ in cells)} |")

        return "\n".join(lines)

    def _column_list(self, block: NotionBlock) -> str:
        columns = [self._children(column) for column in block.children]
        return "\n\n".join(column for column in columns if column)

    def _child_page(self, block: NotionBlock) -> str:
        title = block.content.get("title") or "Untitled"
        return f"[{title}]({notion_page_url(block.id)})"

    def _child_database(self, block: NotionBlock) -> str:
        title = block.content.get("title") or "Untitled Database"
        return f"**{title}** (database)"

    def _passthrough(self, block: NotionBlock) -> str:
        return self._children(block)

    # =========================================================================
    # Utilities
    # =========================================================================

    def _needs_spacing(self, prev_type: str, curr_type: str) -> bool:
        """Blank line between blocks, except between items of the same list."""
        if prev_type in LIST_TYPES and curr_type in LIST_TYPES:
            return False
        return True

    def _normalize_whitespace(self, content: str) -> str:
        """
        Strip trailing spaces, cap blank runs at one line, end with one newline.

        Lines inside fenced code blocks are kept exactly as written.
        """
        result = []
        in_fence = False
        for line in content.split("\n"):
            is_fence = line.lstrip().startswith("```")
            if in_fence and not is_fence:
                result.append(line)
                continue
            if is_fence:
                in_fence = not in_fence

            line = line.rstrip()
            if not line and result and not result[-1]:
                continue
            result.append(line)

        content = "\n".join(result).strip("\n")
        return f"{content}\n" if content else ""
