"""Shopping list export in various formats."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from .checklist import DisplayEntry
from .service import ShoppingListView


def _flags(entry: DisplayEntry) -> list[str]:
    if entry.aggregated is None:
        return []
    return entry.aggregated.provenance


def export_to_json(
    view: ShoppingListView,
    filepath: str | Path,
    *,
    title: str | None = None,
) -> None:
    """
    Export shopping list to JSON format.

    Args:
        view: Resolved shopping list
        filepath: Output file path
        title: Optional list title
    """
    data: dict[str, Any] = {
        "exported_at": datetime.now().isoformat(),
        "title": title,
        "session_id": view.session_id,
        "sort_mode": view.mode.value,
        "items": [],
        "summary": {
            "total_items": view.total_count,
            "checked": view.checked_count,
            "unpositioned": view.unpositioned_count,
        },
    }

    for row, entry in zip(view.rows, view.entries):
        item = row.to_dict()
        item["flags"] = _flags(entry)
        data["items"].append(item)

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def export_to_markdown(
    view: ShoppingListView,
    filepath: str | Path,
    *,
    title: str | None = None,
) -> None:
    """
    Export shopping list to Markdown format.

    Args:
        view: Resolved shopping list
        filepath: Output file path
        title: Optional list title
    """
    lines: list[str] = []

    # Header
    lines.append(f"# {title or 'Shopping List'}")
    lines.append("")
    lines.append(f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*")
    lines.append("")

    # Summary
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Items:** {view.total_count}")
    lines.append(f"- **Checked:** {view.checked_count} of {view.total_count}")
    if view.unpositioned_count:
        lines.append(f"- **Without store position:** {view.unpositioned_count}")
    lines.append("")

    # Shopping list
    lines.append("## Items")
    lines.append("")

    for row in view.rows:
        box = "[x]" if row.checked else "[ ]"
        lines.append(f"- {box} {row.display_text}")

    lines.append("")

    with open(filepath, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def export_to_pdf(
    view: ShoppingListView,
    filepath: str | Path,
    *,
    title: str | None = None,
) -> None:
    """
    Export shopping list to PDF format.

    Requires reportlab package.

    Args:
        view: Resolved shopping list
        filepath: Output file path
        title: Optional list title
    """
    try:
        from reportlab.lib import colors  # type: ignore[import-untyped]
        from reportlab.lib.pagesizes import A4  # type: ignore[import-untyped]
        from reportlab.lib.styles import (  # type: ignore[import-untyped]
            ParagraphStyle,
            getSampleStyleSheet,
        )
        from reportlab.lib.units import cm  # type: ignore[import-untyped]
        from reportlab.platypus import (  # type: ignore[import-untyped]
            Paragraph,
            SimpleDocTemplate,
            Spacer,
            Table,
            TableStyle,
        )
    except ImportError as e:
        raise ImportError(
            "PDF export requires reportlab. Install with: pip install 'meal-shopper[pdf]'"
        ) from e

    doc = SimpleDocTemplate(
        str(filepath),
        pagesize=A4,
        rightMargin=2 * cm,
        leftMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "CustomTitle",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=12,
    )
    subtitle_style = ParagraphStyle(
        "CustomSubtitle",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.grey,
        spaceAfter=20,
    )

    elements: list[Any] = []

    elements.append(Paragraph(title or "Shopping List", title_style))
    elements.append(
        Paragraph(
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
            subtitle_style,
        )
    )

    summary_data = [
        ["Items", str(view.total_count)],
        ["Checked", str(view.checked_count)],
        ["Without position", str(view.unpositioned_count)],
    ]
    summary_table = Table(summary_data, colWidths=[4 * cm, 3 * cm])
    summary_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (0, -1), colors.lightgrey),
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("PADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    elements.append(summary_table)
    elements.append(Spacer(1, 20))

    elements.append(Paragraph("Shopping List", styles["Heading2"]))
    elements.append(Spacer(1, 10))

    table_data = [["", "Item"]]
    for row in view.rows:
        text = row.display_text
        table_data.append(["☑" if row.checked else "☐", text[:70] + "..." if len(text) > 70 else text])

    main_table = Table(table_data, colWidths=[1.2 * cm, 13.8 * cm])
    main_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (0, 0), (0, -1), "CENTER"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("PADDING", (0, 0), (-1, -1), 6),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    elements.append(main_table)

    doc.build(elements)


def export_shopping_list(
    view: ShoppingListView,
    filepath: str | Path,
    *,
    title: str | None = None,
    format: str | None = None,
) -> str:
    """
    Export shopping list to file.

    Format is auto-detected from file extension if not specified.

    Args:
        view: Resolved shopping list
        filepath: Output file path
        title: Optional list title
        format: Output format (json, md, pdf) - auto-detected if None

    Returns:
        The format used for export
    """
    path = Path(filepath)

    if format is None:
        format_map = {
            ".json": "json",
            ".md": "md",
            ".markdown": "md",
            ".pdf": "pdf",
        }
        format = format_map.get(path.suffix.lower(), "md")

    if format == "json":
        export_to_json(view, filepath, title=title)
    elif format in ("md", "markdown"):
        export_to_markdown(view, filepath, title=title)
    elif format == "pdf":
        export_to_pdf(view, filepath, title=title)
    else:
        raise ValueError(f"Unsupported format: {format}")

    return format
