"""
Query Expansion

Appends domain synonyms to a free-text query before it is embedded, so
short queries like "brand" land closer to documents that talk about
logos and identity guidelines.
"""

# Ordered: expansions are appended in this order
QUERY_EXPANSIONS = (
    ('marketing', 'marketing campaign advertising promotion'),
    ('brand', 'brand branding identity logo'),
    ('social', 'social media facebook twitter instagram'),
    ('email', 'email newsletter mailchimp campaign'),
    ('content', 'content blog article copy writing'),
    ('analytics', 'analytics metrics data performance'),
    ('strategy', 'strategy plan roadmap objectives'),
    ('creative', 'creative design visual artwork'),
)


def enhance_query(query: str, expansions=QUERY_EXPANSIONS) -> str:
    """
    Expand a query with synonyms for every key it contains.

    Args:
        query: Raw user query
        expansions: Ordered (key, expansion) pairs

    Returns:
        The query followed by each matching expansion, space-separated;
        the query itself when nothing matches
    """
    lowered = query.lower()
    parts = [query]

    for key, expansion in expansions:
        if key in lowered:
            parts.append(expansion)

    return ' '.join(parts)
