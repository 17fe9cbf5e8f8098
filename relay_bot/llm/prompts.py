from __future__ import annotations

RECRAFT_STYLES = ("realistic_image", "digital_illustration", "vector_illustration", "icon")
DEFAULT_RECRAFT_STYLE = "digital_illustration"

TRANSLATE_PROMPT = """
Translate the following image prompt into English. If it is already English,
return it unchanged. Reply with the prompt only, no quotes or commentary.
"""

SUBJECT_PROMPT = """
From the following image-editing instruction, name the object in the existing
image that should be replaced. Reply with a short noun phrase only.
"""

STYLE_PROMPT = """
Pick the visual style that best fits the following image prompt. Reply with
exactly one of: {styles}.
"""

HELP_TEXT = """
**How to talk to me** (mention me first):
- `@bot <message>` chat with me; history is kept per user for 2 hours
- `@bot !tokens=2000 !temp=0.7 <message>` set max tokens (1-8192) and temperature (0-2) for one reply
- `@bot !system <prompt>` replace your system prompt
- `@bot !clear [message]` forget your history and reset the system prompt
- `@bot !img <prompt>` generate an image with DALL-E 3
- `@bot !gimg <prompt>` generate an image with Google Imagen
- `@bot !simg <prompt>` generate or modify (attach an image) with Stability AI
- `@bot !rimg <prompt>` generate or modify (attach an image) with Recraft.ai
- `@bot !edit <prompt>` edit an attached image with OpenAI
- `@bot !video` turn an attached image into a short video with Stability AI
- `@bot !search <query>` answer from the web via Perplexity
- `@bot !help` show this message
Replying to a message uses its text and image as context.
"""


def style_prompt(prompt: str) -> str:
    return STYLE_PROMPT.strip().format(styles=", ".join(RECRAFT_STYLES)) + "\n\n" + prompt.strip()


def translate_prompt(prompt: str) -> str:
    return TRANSLATE_PROMPT.strip() + "\n\n" + prompt.strip()


def subject_prompt(prompt: str) -> str:
    return SUBJECT_PROMPT.strip() + "\n\n" + prompt.strip()
