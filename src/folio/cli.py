"""Command line interface for the page store.

Usage:
    folio [command] [args...]

Commands:
    pages                   List pages
    create-page TITLE       Create a new page
    blocks PAGE_ID          Show the block tree of a page
    backlinks PAGE_ID       List blocks that link to a page
    export PAGE_ID          Export page as markdown
    import PAGE_ID FILE     Replace a page's blocks with a markdown file
    serve                   Run the JSON-RPC server on stdio
"""

from __future__ import annotations

import sys
from pathlib import Path

from .blocks.links import strip_link_tokens
from .errors import FolioError, NotFoundError
from .logging_setup import configure_logging


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(__doc__)
        return 0

    command = args[0]
    configure_logging()

    try:
        if command == "pages":
            return cmd_pages()
        elif command == "create-page":
            if len(args) < 2:
                print("Usage: create-page TITLE")
                return 1
            return cmd_create_page(" ".join(args[1:]))
        elif command == "blocks":
            if len(args) < 2:
                print("Usage: blocks PAGE_ID")
                return 1
            return cmd_blocks(args[1])
        elif command == "backlinks":
            if len(args) < 2:
                print("Usage: backlinks PAGE_ID")
                return 1
            return cmd_backlinks(args[1])
        elif command == "export":
            if len(args) < 2:
                print("Usage: export PAGE_ID")
                return 1
            return cmd_export(args[1])
        elif command == "import":
            if len(args) < 3:
                print("Usage: import PAGE_ID FILE")
                return 1
            return cmd_import(args[1], Path(args[2]))
        elif command == "serve":
            return cmd_serve()
        elif command in ("-h", "--help", "help"):
            print(__doc__)
            return 0
        else:
            print(f"Unknown command: {command}")
            print(__doc__)
            return 1

    except (FolioError, OSError) as e:
        print(f"Error: {e}")
        return 1


def cmd_pages() -> int:
    """List pages."""
    from .storage import pages_db

    pages = pages_db.list_pages()

    print(f"\n{'ID':<20} {'Title':<40} {'Type'}")
    print("-" * 70)
    for page in pages:
        print(f"{page.id:<20} {page.title:<40} {page.type.value}")

    print(f"\nTotal: {len(pages)} pages")
    return 0


def cmd_create_page(title: str) -> int:
    """Create a page."""
    from .storage import pages_db

    page = pages_db.create_page(title)
    print(f"Created page: {page.id}")
    print(f"Title: {page.title}")
    return 0


def cmd_blocks(page_id: str) -> int:
    """Show the block tree of a page."""
    from .blocks.tree import build_tree, walk_tree
    from .storage import blocks_db

    roots = build_tree(blocks_db.load_page_blocks(page_id))

    print(f"\nBlocks in page {page_id}:")
    print("-" * 60)
    for node, depth in walk_tree(roots):
        prefix = "  " * depth
        plain = strip_link_tokens(node.block.content)
        text = plain[:50] + ("..." if len(plain) > 50 else "")
        print(f"{prefix}{node.block.type.value}: {text or '(empty)'}")

    print(f"\nTotal: {len(roots)} root blocks")
    return 0


def cmd_backlinks(page_id: str) -> int:
    """List blocks linking to a page."""
    from .storage import blocks_db

    backlinks = blocks_db.find_backlinks(page_id)

    print(f"\nBacklinks to {page_id}:")
    print("-" * 60)
    for link in backlinks:
        print(f"{link.page_title} ({link.block_id}): {strip_link_tokens(link.preview)}")

    print(f"\nTotal: {len(backlinks)} backlinks")
    return 0


def cmd_export(page_id: str) -> int:
    """Export a page as markdown."""
    from .blocks.markdown import render_markdown
    from .storage import blocks_db, pages_db

    page = pages_db.get_page(page_id)
    if page is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)

    print(f"# {page.title}\n")
    print(render_markdown(blocks_db.load_page_blocks(page_id)))
    return 0


def cmd_import(page_id: str, path: Path) -> int:
    """Replace a page's blocks with the contents of a markdown file."""
    from .blocks.markdown import parse_markdown
    from .storage import blocks_db, pages_db

    if pages_db.get_page(page_id) is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)

    blocks = parse_markdown(path.read_text(encoding="utf-8"), page_id)
    blocks_db.replace_page_blocks(page_id, blocks)
    print(f"Imported {len(blocks)} blocks into {page_id}")
    return 0


def cmd_serve() -> int:
    """Run the JSON-RPC server on stdio."""
    from .rpc.server import serve

    serve()
    return 0


if __name__ == "__main__":
    sys.exit(main())
