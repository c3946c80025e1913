from functools import lru_cache

from config import LLMSettings
from llm.llm_client import LLMClient


@lru_cache(maxsize=None)
def get_llm_client(llm_config: LLMSettings) -> LLMClient:
    """
    Returns one LLMClient per (frozen, hashable) settings object.
    """
    return LLMClient(llm_config)
