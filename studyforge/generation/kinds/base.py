# studyforge/generation/kinds/base.py
"""
Base class for item kinds.

An item kind bundles everything generation needs to know about one kind of
study item: the pydantic model the service output is validated against and
the prompts that ask for it.
"""

from abc import ABC, abstractmethod

from studyforge.generation.chunker import ContentChunk
from studyforge.models.items import StudyItem
from studyforge.models.requests import Preferences
from studyforge.prompts import load_prompt


class ItemKind(ABC):
    """
    Abstract base class for generatable item kinds.

    Each kind defines:
    1. Its tag (the `kind` discriminator on items and requests)
    2. The item model the service output is validated against
    3. The system prompt with its authoring guidelines
    """

    @property
    @abstractmethod
    def tag(self) -> str:
        """Kind tag (e.g., "flashcard")."""
        pass

    @property
    @abstractmethod
    def item_model(self) -> type[StudyItem]:
        """Pydantic model for one item of this kind."""
        pass

    @property
    def label(self) -> str:
        """Plural name used in prompts and status messages."""
        return f"{self.tag} items"

    @property
    def comparison_fields(self) -> tuple[str, ...]:
        return self.item_model.comparison_fields

    def system_prompt(self, preferences: Preferences) -> str:
        return load_prompt(self.tag)

    def build_messages(
        self,
        chunk: ContentChunk,
        count: int,
        preferences: Preferences,
        fallback: bool = False,
    ) -> list[dict]:
        """
        Build the chat messages for one chunk.

        Args:
            chunk: Content to generate from
            count: Number of items to ask for
            preferences: Difficulty, style and humor preferences
            fallback: Append the plain-JSON instruction used when no schema is sent

        Returns:
            List of message dicts with "role" and "content" keys
        """
        style = f"Style: {preferences.style}\n" if preferences.style else ""
        humor = "Light humor is welcome where it helps memorability.\n" if preferences.include_humor else ""
        user = load_prompt("generation_user").format(
            count=count,
            label=self.label,
            difficulty=preferences.difficulty,
            style=style,
            humor=humor,
            page_references=chunk.page_reference_lines(),
            content=chunk.content.strip(),
        )
        if fallback:
            user += "\n" + load_prompt("generation_fallback").format(label=self.label)
        return [
            {"role": "system", "content": self.system_prompt(preferences)},
            {"role": "user", "content": user},
        ]
