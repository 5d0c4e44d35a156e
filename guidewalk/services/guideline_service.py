"""
Guideline registry: load documents from JSON, store and retrieve them.

Documents are parsed (and tagged with their format) before they are stored,
so anything read back from the database is known to be well-shaped.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from guidewalk.models_db import GuidelineModel
from guidewalk.utils.exceptions import GuidelineFormatError
from shared.schemas import Guideline, GuidelineFormat, NICEGuideline, parse_guideline

logger = logging.getLogger(__name__)

AnyDocument = Union[Guideline, NICEGuideline]


def load_guideline_file(path: Union[str, Path]) -> AnyDocument:
    """Read and parse a guideline JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Guideline file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GuidelineFormatError(f"{path.name} is not valid JSON: {e.msg}", details={"line": e.lineno}) from e
    doc = parse_guideline(data)
    logger.info("Loaded %s guideline %s from %s", doc.format, doc.guideline_id, path.name)
    return doc


def dump_guideline(doc: AnyDocument) -> dict[str, Any]:
    """JSON-ready document using the original field names (if, then, else, from)."""
    return doc.model_dump(mode="json", by_alias=True)


def save_guideline(db: Session, guideline: Union[AnyDocument, dict[str, Any]]) -> AnyDocument:
    """Parse and upsert a guideline; returns the parsed document."""
    doc = parse_guideline(guideline)
    payload = dump_guideline(doc)
    row = db.query(GuidelineModel).filter(GuidelineModel.id == doc.guideline_id).first()
    if row:
        row.name = doc.name
        row.version = doc.version
        row.format = doc.format
        row.citation = doc.citation
        row.citation_url = doc.citation_url
        row.document = payload
    else:
        row = GuidelineModel(
            id=doc.guideline_id,
            name=doc.name,
            version=doc.version,
            format=doc.format,
            citation=doc.citation,
            citation_url=doc.citation_url,
            document=payload,
        )
        db.add(row)
    db.commit()
    logger.info("Saved %s guideline %s (version %s)", doc.format, doc.guideline_id, doc.version)
    return doc


def get_guideline(db: Session, guideline_id: str) -> Optional[AnyDocument]:
    """Load a stored guideline, or None."""
    row = db.query(GuidelineModel).filter(GuidelineModel.id == guideline_id).first()
    if not row:
        return None
    return parse_guideline(row.document)


def list_guidelines(db: Session, format: Optional[GuidelineFormat] = None) -> list[dict[str, Any]]:
    """Summaries of stored guidelines, most recently updated first."""
    q = db.query(GuidelineModel).order_by(GuidelineModel.updated_at.desc())
    if format:
        q = q.filter(GuidelineModel.format == GuidelineFormat(format).value)
    return [
        {
            "id": r.id,
            "name": r.name,
            "version": r.version,
            "format": r.format,
            "citation": r.citation,
            "citation_url": r.citation_url,
            "created_at": r.created_at.isoformat(),
            "updated_at": r.updated_at.isoformat(),
        }
        for r in q.all()
    ]


def delete_guideline(db: Session, guideline_id: str) -> bool:
    """Delete a stored guideline. Returns False if it did not exist."""
    row = db.query(GuidelineModel).filter(GuidelineModel.id == guideline_id).first()
    if not row:
        return False
    db.delete(row)
    db.commit()
    logger.info("Deleted guideline %s", guideline_id)
    return True
