"""
Alternatives — built-in suggestions for things to do instead of using.

Two small catalogs (oral-fixation substitutes and general activities) plus a
sampler. The sampler takes a random.Random so tests can make it
deterministic.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

DEFAULT_SUGGESTION_COUNT = 3


@dataclass
class Suggestion:
    title: str
    description: str
    icon: str


# Built-in catalogs, keyed by category
ORAL_FIXATION: List[Suggestion] = [
    Suggestion("Sugar-free gum",
               "Chew sugar-free gum to satisfy oral fixation without calories",
               "fas fa-chewing-gum"),
    Suggestion("Herbal tea",
               "Sip on warm herbal tea with honey for a soothing experience",
               "fas fa-mug-hot"),
    Suggestion("Crunchy vegetables",
               "Snack on carrots, celery, or cucumber for satisfying crunch",
               "fas fa-carrot"),
    Suggestion("Ice cubes",
               "Suck on ice cubes or flavored ice for oral stimulation",
               "fas fa-snowflake"),
    Suggestion("Hard candies",
               "Sugar-free hard candies that last longer",
               "fas fa-candy-cane"),
    Suggestion("Sunflower seeds",
               "Shell and eat sunflower seeds for manual and oral activity",
               "fas fa-seedling"),
    Suggestion("Fizzy water",
               "Sparkling water with lemon or lime for bubbly sensation",
               "fas fa-glass-water"),
    Suggestion("Frozen grapes",
               "Freeze grapes for a cold, sweet treat that takes time to eat",
               "fas fa-grapes"),
]

GENERAL: List[Suggestion] = [
    Suggestion("Take a walk",
               "Go for a 10-15 minute walk to clear your mind and get fresh air",
               "fas fa-walking"),
    Suggestion("Deep breathing",
               "Practice 4-7-8 breathing: inhale 4, hold 7, exhale 8",
               "fas fa-lungs"),
    Suggestion("Call a friend",
               "Reach out to someone you trust for support and distraction",
               "fas fa-phone"),
    Suggestion("Read a book",
               "Immerse yourself in a good book to escape and relax",
               "fas fa-book"),
    Suggestion("Listen to music",
               "Put on your favorite playlist and let the music carry you",
               "fas fa-music"),
    Suggestion("Do a puzzle",
               "Crossword, Sudoku, or jigsaw puzzle to engage your mind",
               "fas fa-puzzle-piece"),
    Suggestion("Take a shower",
               "A warm shower can help relax and reset your mood",
               "fas fa-shower"),
    Suggestion("Write in a journal",
               "Express your thoughts and feelings on paper",
               "fas fa-pen"),
    Suggestion("Stretch or yoga",
               "Gentle stretching or yoga poses to release tension",
               "fas fa-yoga"),
    Suggestion("Clean something",
               "Organize a drawer or clean a small area to feel productive",
               "fas fa-broom"),
    Suggestion("Draw or color",
               "Creative activities can be very therapeutic and distracting",
               "fas fa-palette"),
    Suggestion("Meditation",
               "5-10 minutes of mindfulness meditation to center yourself",
               "fas fa-om"),
]

CATALOG: Dict[str, List[Suggestion]] = {
    "oral": ORAL_FIXATION,
    "general": GENERAL,
}


def suggestion_id(category: str, suggestion: Suggestion) -> str:
    return f"{category}-{suggestion.title}"


def is_known_suggestion(item_id: str) -> bool:
    return any(
        suggestion_id(category, s) == item_id
        for category, items in CATALOG.items()
        for s in items
    )


def sample_suggestions(
    items: List[Suggestion],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[Suggestion]:
    """Uniform sample without replacement, at most len(items) long."""
    rng = rng or random.Random()
    return rng.sample(items, min(max(count, 0), len(items)))


def pick_suggestions(
    tried_items: List[str],
    count: int = DEFAULT_SUGGESTION_COUNT,
    rng: Optional[random.Random] = None,
) -> Dict[str, List[dict]]:
    """A fresh sample from each category, formatted for display."""
    rng = rng or random.Random()
    tried = set(tried_items)
    picked: Dict[str, List[dict]] = {}
    for category, items in CATALOG.items():
        picked[category] = [
            {
                "id": suggestion_id(category, s),
                "title": s.title,
                "description": s.description,
                "icon": s.icon,
                "tried": suggestion_id(category, s) in tried,
            }
            for s in sample_suggestions(items, count, rng)
        ]
    return picked


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   A mini knowledge base of substitute activities, baked into the app. The
#   UI shows three random picks per category and marks the ones already tried.
#
# Key pieces:
#   - Suggestion: dataclass holding one idea.
#   - sample_suggestions(): random.Random.sample, i.e. uniform without
#     replacement; passing a seeded Random makes tests repeatable.
#   - suggestion ids are "<category>-<title>", which is what the tried list
#     in storage holds.
#
# Interviewer-friendly talking points:
#   1. Injecting the random source instead of calling random.shuffle on a
#      module global keeps the function pure from the caller's point of view.
#   2. Hardcoded catalog vs API: offline-first, no network dependency.
