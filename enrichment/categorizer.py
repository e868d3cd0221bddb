"""
Keyword Categorizer

Assigns document metadata without any API calls:
- Category by keyword scoring over filename and text
- Tags from filename parts and marketing terms in the text
- Team guessed from the upload path

Usage:
    from enrichment.categorizer import DocumentCategorizer

    categorizer = DocumentCategorizer()
    category = categorizer.categorize(text, "q4_campaign_brief.pdf")
    tags = categorizer.extract_tags(text, "q4_campaign_brief.pdf")
"""

import re
from pathlib import PurePath
from typing import Dict, List, Tuple

from core.models import Category, DEFAULT_CATEGORY, MAX_TAGS


class DocumentCategorizer:
    """
    Score-based document classifier.

    Filename hits weigh 2, text hits weigh 1. The highest total wins,
    ties go to the category defined first, and a document that matches
    nothing falls back to the default category.
    """

    FILENAME_WEIGHT = 2
    TEXT_WEIGHT = 1

    # Ordered like Category so ties resolve in definition order
    CATEGORY_KEYWORDS: Dict[Category, Tuple[str, ...]] = {
        Category.CAMPAIGN: ('campaign', 'advertising', 'promotion', 'launch', 'marketing campaign'),
        Category.BRAND: ('brand', 'branding', 'identity', 'logo', 'brand guide'),
        Category.SOCIAL_MEDIA: ('social', 'facebook', 'twitter', 'instagram', 'linkedin', 'tiktok'),
        Category.EMAIL: ('email', 'newsletter', 'mailchimp', 'campaign monitor', 'subject line'),
        Category.CONTENT: ('content', 'blog', 'article', 'copy', 'copywriting', 'editorial'),
        Category.ANALYTICS: ('analytics', 'metrics', 'kpi', 'performance', 'data', 'report'),
        Category.STRATEGY: ('strategy', 'plan', 'roadmap', 'objectives', 'goals'),
        Category.CREATIVE: ('creative', 'design', 'visual', 'artwork', 'graphics'),
    }

    MARKETING_TERMS = (
        'roi', 'ctr', 'conversion', 'engagement', 'reach', 'impressions',
        'leads', 'funnel', 'acquisition', 'retention', 'churn', 'ltv',
        'seo', 'sem', 'ppc', 'cpc', 'cpm', 'organic', 'paid',
        'a/b test', 'landing page', 'call to action', 'cta',
    )

    TEAM_KEYWORDS: Dict[str, Tuple[str, ...]] = {
        'creative': ('creative', 'design', 'graphics'),
        'content': ('content', 'editorial', 'blog'),
        'social': ('social', 'community'),
        'email': ('email', 'newsletter'),
        'analytics': ('analytics', 'data', 'reporting'),
        'strategy': ('strategy', 'planning'),
    }

    DEFAULT_TEAM = 'general'

    _FILENAME_SPLIT = re.compile(r'[-_\s]+')
    _PATH_SPLIT = re.compile(r'[/\\]')

    def score(self, text: str, filename: str) -> Dict[Category, int]:
        """Per-category keyword score."""
        lower_filename = (filename or '').lower()
        lower_text = (text or '').lower()

        scores = {}
        for category in Category:
            total = 0
            for keyword in self.CATEGORY_KEYWORDS.get(category, ()):
                if keyword in lower_filename:
                    total += self.FILENAME_WEIGHT
                if keyword in lower_text:
                    total += self.TEXT_WEIGHT
            scores[category] = total
        return scores

    def categorize(self, text: str, filename: str) -> Category:
        """
        Pick the best-scoring category.

        Args:
            text: Extracted document text
            filename: Original file name

        Returns:
            Winning Category, or the default when nothing matches
        """
        scores = self.score(text, filename)

        best = None
        best_score = 0
        for category in Category:
            if scores[category] > best_score:
                best, best_score = category, scores[category]

        return best if best is not None else DEFAULT_CATEGORY

    def extract_tags(self, text: str, filename: str) -> List[str]:
        """
        Tags from the filename stem and known marketing terms.

        Filename parts shorter than 3 characters are dropped. Order is
        filename parts first, then terms, with duplicates removed.
        """
        tags: List[str] = []

        stem = PurePath(filename or '').stem
        for part in self._FILENAME_SPLIT.split(stem):
            part = part.lower()
            if len(part) > 2 and part not in tags:
                tags.append(part)

        lower_text = (text or '').lower()
        for term in self.MARKETING_TERMS:
            if term in lower_text and term not in tags:
                tags.append(term)

        return tags[:MAX_TAGS]

    def infer_team(self, path: str) -> str:
        """First path component that names a team keyword, else 'general'."""
        for part in self._PATH_SPLIT.split(str(path or '')):
            lower_part = part.lower()
            for team, keywords in self.TEAM_KEYWORDS.items():
                if any(keyword in lower_part for keyword in keywords):
                    return team

        return self.DEFAULT_TEAM
