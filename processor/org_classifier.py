"""Organization detection and display token lookup."""
import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from processor.models import OrgClassification

FALLBACK_ORG = 'Campus'

# Registry order is match priority: the first hit becomes the primary org.
DEFAULT_ORG_PATTERNS: List[Tuple[str, Pattern]] = [
    ('NSLS', re.compile(
        r'nsls|national society of leadership and success|'
        r'leadership training|induction|snt',
        re.IGNORECASE
    )),
    ('WoCSA', re.compile(
        r'wocsa|women of color student association', re.IGNORECASE
    )),
    ('ODK', re.compile(r'omicron delta kappa|\bodk\b', re.IGNORECASE)),
    ('CSEI', re.compile(
        r'center for student engagement and involvement|csei', re.IGNORECASE
    )),
    ('DIS', re.compile(
        r'diversity and international services|\bdis\b', re.IGNORECASE
    )),
    ('BSU', re.compile(r'black student union|\bbsu\b', re.IGNORECASE)),
    ('TitleIX', re.compile(
        r'title ix|diversity equity and inclusion|\bdei\b', re.IGNORECASE
    )),
]

DEFAULT_ORG_COLORS: Dict[str, str] = {
    'NSLS': 'var(--color-nsls-regent_st_blue)',
    'WoCSA': 'var(--color-wocsa-peranopurp)',
    'ODK': 'var(--color-odk-sinbad)',
    'CSEI': 'var(--color-csei-zanah)',
    'DIS': 'var(--color-dis-sidecar)',
    'BSU': 'var(--color-bsu-mandys_pink)',
    'TitleIX': 'var(--color-titleix-wewak)',
    'Multi': 'var(--color-multi-vanilla_ice)',
    FALLBACK_ORG: 'var(--color-satin_linen)',
}

DEFAULT_ORG_EMOJIS: Dict[str, str] = {
    'BSU': '\u270a\U0001f3ff',
    'DIS': '\U0001f30d',
    'TitleIX': '\U0001f64c\U0001f3fd',
    'ODK': '\U0001f31f',
    'NSLS': '\U0001f469\U0001f3fe\u200d\U0001f393',
    'WoCSA': '\U0001f49c',
    'CSEI': '\U0001f91d',
    FALLBACK_ORG: '\U0001f4e3',
}


class OrgClassifier:
    """Detects hosting organizations with an ordered pattern registry."""

    def __init__(
        self,
        patterns: Optional[Sequence[Tuple[str, Pattern]]] = None,
        colors: Optional[Dict[str, str]] = None,
        emojis: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the classifier.

        Args:
            patterns: Ordered (organization key, compiled regex) pairs
            colors: Organization key to color token; must map 'Campus'
            emojis: Organization key to emoji token; must map 'Campus'

        Raises:
            ValueError: If a lookup table has no 'Campus' fallback entry
        """
        self.patterns = list(DEFAULT_ORG_PATTERNS if patterns is None else patterns)
        self.colors = dict(DEFAULT_ORG_COLORS if colors is None else colors)
        self.emojis = dict(DEFAULT_ORG_EMOJIS if emojis is None else emojis)

        for name, table in (('colors', self.colors), ('emojis', self.emojis)):
            if FALLBACK_ORG not in table:
                raise ValueError(
                    f"Org {name} table requires a '{FALLBACK_ORG}' fallback entry"
                )

    def classify(
        self,
        title: Optional[str],
        description: Optional[str],
        location: Optional[str]
    ) -> OrgClassification:
        """
        Detect every organization mentioned in an event's text fields.

        Args:
            title: Event title
            description: Event description
            location: Event location

        Returns:
            OrgClassification with keys in registry order; never empty
        """
        searchable = ' '.join(
            part for part in (title, description, location)
            if isinstance(part, str)
        )
        searchable = re.sub(r'\s+', ' ', searchable.casefold()).strip()

        matches = [
            key for key, pattern in self.patterns
            if pattern.search(searchable)
        ]
        if not matches:
            matches = [FALLBACK_ORG]

        return OrgClassification(hosting_org=tuple(matches), primary_org=matches[0])

    def color_of(self, key: str) -> str:
        """Return the color token for an organization key."""
        return self.colors.get(key, self.colors[FALLBACK_ORG])

    def emoji_of(self, key: str) -> str:
        """Return the emoji token for an organization key."""
        return self.emojis.get(key, self.emojis[FALLBACK_ORG])

    def emojis_of(self, hosting_org: Iterable[str]) -> str:
        """Space-joined emoji tokens for every hosting organization."""
        tokens = [self.emoji_of(key) for key in hosting_org]
        return ' '.join(token for token in tokens if token)
