from typing import List

from pydantic import BaseModel, Field, field_validator

BANNED_MD_TOKENS = ("```", "#", "*", "_", ">", "[", "]")


class LetterParts(BaseModel):
    """
    Structured components of a cover letter, rejected when they carry
    markdown or paragraphs too thin to be useful.
    """
    greeting: str = Field(..., description="E.g.: 'Dear Hiring Manager,' without markdown")
    paragraphs: List[str] = Field(..., min_length=3, max_length=4, description="3-4 paragraphs, plain text")
    closing: str = Field(..., description="E.g.: 'Sincerely,'")
    signature: str = Field(..., description="Name and contacts, no markdown")

    @field_validator("greeting", "closing", "signature", mode="before")
    @classmethod
    def forbid_markdown(cls, v):
        if any(tok in v for tok in BANNED_MD_TOKENS):
            raise ValueError("Markdown is not allowed.")
        return v.strip()

    @field_validator("paragraphs")
    @classmethod
    def paragraphs_plain_and_sized(cls, paras: List[str]):
        for p in paras:
            if any(tok in p for tok in BANNED_MD_TOKENS):
                raise ValueError("Markdown is not allowed in paragraphs.")
            if len(p.split()) < 40:
                raise ValueError("Each paragraph should be substantial (>= 40 words).")
        return [p.strip() for p in paras]


def join_parts(lp: LetterParts) -> str:
    """Combine the letter parts into plain text separated by blank lines."""
    chunks = [lp.greeting, *lp.paragraphs, lp.closing + "\n" + lp.signature]
    return "\n\n".join(chunk.strip() for chunk in chunks if chunk.strip())
