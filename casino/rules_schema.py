"""Validation schema for Casino rules configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScoringConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    most_cards: int = Field(2, ge=0, description="Points for capturing the most cards (split 1/1 on a tie).")
    most_spades: int = Field(2, ge=0, description="Points for capturing the most spades (split 1/1 on a tie).")
    ace: int = Field(1, ge=0, description="Points per captured Ace.")
    big_casino: int = Field(2, ge=0, description="Points for the ten of diamonds.")
    little_casino: int = Field(1, ge=0, description="Points for the two of spades.")
    tie_split: int = Field(1, ge=0, description="Points each player receives when a majority category ties.")


class RuleSet(BaseModel):
    # Frozen models hash by value, so a RuleSet can sit on a frozen GameState.
    model_config = ConfigDict(frozen=True)

    hand_size: int = Field(10, gt=0, description="Cards dealt to each player per round.")
    max_build_value: int = Field(10, ge=1, le=10)
    max_build_cards: int = Field(5, ge=2, description="Extendable builds must stay below this many cards.")
    include_face_cards: bool = Field(False, description="Play with J/Q/K in the deck (52 cards).")
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    @property
    def deck_size(self) -> int:
        return 52 if self.include_face_cards else 40

    @property
    def round_two_min_deck(self) -> int:
        """Deck size required to deal round 2."""
        return 2 * self.hand_size

    @model_validator(mode="after")
    def ensure_two_full_deals(self) -> "RuleSet":
        # Two rounds are played, so both deals together must use the whole deck.
        if 4 * self.hand_size != self.deck_size:
            raise ValueError(
                f"hand_size must be {self.deck_size // 4} so two deals use all {self.deck_size} cards."
            )
        return self


DEFAULT_RULES = RuleSet()
FACE_CARD_RULES = RuleSet(include_face_cards=True, hand_size=13)


def load_rules(path: Union[str, Path]) -> RuleSet:
    """Load a RuleSet from a JSON file."""
    return RuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))
