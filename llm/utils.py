def format_prompt(template: str, **kwargs) -> str:
    """
    Replace `{key}` placeholders without interpreting other braces, so prompts
    may contain literal JSON examples.
    """
    result = template
    for key, value in kwargs.items():
        result = result.replace(f"{{{key}}}", value if isinstance(value, str) else str(value))
    return result


def numbered(options) -> str:
    """Render options as a 1-based numbered list."""
    return "\n".join(f"{index}. {option}" for index, option in enumerate(options, start=1))


def truncate(text: str, limit: int) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit].rstrip() + "..."
