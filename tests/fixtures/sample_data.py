#!/usr/bin/env python3
"""
Sample Data Generator for DocSearch

Creates realistic marketing documents for testing and development.
Covers every category and several teams.

Usage:
    python tests/fixtures/sample_data.py --db data/docsearch.db
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

# =============================================================================
# Sample Document Templates
# =============================================================================

SAMPLE_DOCUMENTS = [
    {
        "title": "q4_campaign_brief.txt",
        "content": "Q4 holiday campaign brief. Launch date, advertising channels and promotion budget.",
        "category": "campaign",
        "team": "marketing",
        "project": "holiday-2024",
        "tags": ["campaign", "brief", "holiday"],
    },
    {
        "title": "brand_guide.md",
        "content": "Brand guidelines covering logo usage, colour palette and visual identity.",
        "category": "brand",
        "team": "creative",
        "project": "rebrand",
        "tags": ["brand", "guide"],
    },
    {
        "title": "instagram_calendar.csv",
        "content": "Instagram and TikTok posting calendar with engagement targets per week.",
        "category": "social-media",
        "team": "social",
        "project": "general",
        "tags": ["instagram", "calendar", "engagement"],
    },
    {
        "title": "newsletter_template.md",
        "content": "Monthly newsletter template. Subject line ideas and a call to action block.",
        "category": "email",
        "team": "email",
        "project": "general",
        "tags": ["newsletter", "template", "call to action"],
    },
    {
        "title": "kpi_report.csv",
        "content": "Quarterly KPI report: CTR, conversion rate and cost per lead by channel.",
        "category": "analytics",
        "team": "analytics",
        "project": "reporting",
        "tags": ["kpi", "report", "ctr", "conversion"],
    },
    {
        "title": "growth_roadmap.txt",
        "content": "Growth roadmap with yearly objectives, owners and milestones.",
        "category": "strategy",
        "team": "strategy",
        "project": "planning-2025",
        "tags": ["growth", "roadmap"],
    },
]


def unit_vector(index: int, dimension: int) -> List[float]:
    """Basis vector e_index."""
    vec = [0.0] * dimension
    vec[index % dimension] = 1.0
    return vec


def vector_with_similarity(similarity: float, dimension: int) -> List[float]:
    """Unit vector whose cosine with e_0 is `similarity`."""
    vec = [0.0] * dimension
    vec[0] = similarity
    vec[1] = math.sqrt(max(0.0, 1.0 - similarity * similarity))
    return vec


def generate_documents(
    count: Optional[int] = None,
    start: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Sample document dicts with increasing created_at.

    Args:
        count: Number of documents (cycles the templates)
        start: created_at of the first document

    Returns:
        List of dicts accepted by core.models.Document(**...)
    """
    count = len(SAMPLE_DOCUMENTS) if count is None else count
    start = start or datetime(2024, 1, 1, 9, 0, 0)

    documents = []
    for i in range(count):
        template = dict(SAMPLE_DOCUMENTS[i % len(SAMPLE_DOCUMENTS)])
        template['created_at'] = start + timedelta(hours=i)
        documents.append(template)
    return documents


if __name__ == '__main__':
    import argparse
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).parent.parent.parent))

    from core.config import load_settings
    from core.models import Category, Document
    from database.repository import DocumentRepository
    from search.embeddings import create_embedder

    parser = argparse.ArgumentParser(description="Seed a DocSearch database with sample documents")
    parser.add_argument('--db', help="Database path")
    parser.add_argument('--count', type=int, default=None)
    args = parser.parse_args()

    settings = load_settings()
    repo = DocumentRepository(args.db or settings.db_path)
    embedder = create_embedder(settings)

    for data in generate_documents(args.count):
        data['category'] = Category.parse(data['category'])
        data['file_type'] = data['title'].rsplit('.', 1)[-1]
        data['embedding'] = embedder.embed(data['content'])
        saved = repo.save(Document(**data))
        print(f"  [OK] {saved.id}: {saved.title}")
