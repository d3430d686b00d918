"""Request payload schemas for the content API."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Language = Literal["chakma", "english"]
CharacterType = Literal["alphabet", "vowel", "conjunct", "diacritic", "ordinal", "symbol"]


class RelatedTerm(BaseModel):
    """Synonym or antonym with its language."""

    term: str = Field(min_length=1)
    language: Language


class ExplanationMedia(BaseModel):
    """Visual explanation attached to a word."""

    type: Literal["url", "image"]
    value: str


class WordPayload(BaseModel):
    """Dictionary word as accepted on create and update."""

    model_config = ConfigDict(extra="ignore")

    chakma_word_script: str
    romanized_pronunciation: str
    english_translation: str
    example_sentence: str = ""
    etymology: str = ""
    synonyms: list[RelatedTerm] = Field(default_factory=list)
    antonyms: list[RelatedTerm] = Field(default_factory=list)
    audio_pronunciation_url: Optional[str] = None
    explanation_media: Optional[ExplanationMedia] = None
    is_verified: bool = False

    @field_validator("chakma_word_script", "romanized_pronunciation", "english_translation")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CharacterPayload(BaseModel):
    """Script character as accepted on create and update."""

    model_config = ConfigDict(extra="ignore")

    character_script: str
    character_type: CharacterType
    romanized_name: str
    description: Optional[str] = None
    audio_pronunciation_url: Optional[str] = None

    @field_validator("character_script", "romanized_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value
