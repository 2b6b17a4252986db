"""Prompt helpers for code generation and refinement instructions."""

from __future__ import annotations


def code_system_prompt() -> str:
    """Return the system prompt used for create and update requests."""
    return (
        "You are an expert Tailwind developer. "
        "You take screenshots of a reference web page from the user, and then build single page apps "
        "using Tailwind, HTML and JS. "
        "You might also be given a screenshot (the second image) of a web page that you have already built, "
        "and asked to update it to look more like the reference image (the first image).\n\n"
        "- Make sure the app looks exactly like the screenshot.\n"
        "- Pay close attention to background color, text color, font size, font family, padding, margin, "
        "border, etc. Match the colors and sizes exactly.\n"
        "- Use the exact text from the screenshot.\n"
        "- Do not add comments in the code such as \"<!-- Add other navigation links as needed -->\" in place "
        "of writing the full code. WRITE THE FULL CODE.\n"
        "- Repeat elements as needed to match the screenshot.\n"
        "- For images, use placeholder images from https://placehold.co and include a detailed description "
        "of the image in the alt text so that an image generation AI can generate the image later.\n\n"
        "In terms of libraries,\n"
        "- Use this script to include Tailwind: <script src=\"https://cdn.tailwindcss.com\"></script>\n"
        "- You can use Google Fonts\n"
        "- Font Awesome for icons: "
        "<link rel=\"stylesheet\" href=\"https://cdnjs.cloudflare.com/ajax/libs/font-awesome/5.15.3/css/all.min.css\">\n\n"
        "Return only the full code in <html></html> tags.\n"
        "Do not include markdown \"```\" or \"```html\" at the start or end."
    )


def code_user_prompt() -> str:
    """Return the user guidance sent with the reference image."""
    return "Generate code for a web page that looks exactly like this."


def instruction_system_prompt() -> str:
    """Return the system prompt for comparing the reference with the rendered result."""
    return (
        "You are a meticulous front-end reviewer. "
        "The first image is the reference design and the second image is a screenshot of the page "
        "that was built from it. Find every visual difference between the two."
    )


def instruction_user_prompt() -> str:
    """Return the instruction format contract parsed by the mistake counter."""
    return (
        "List every mistake in the built page as a numbered list, one mistake per line, "
        "using the format '1. <what is wrong and how to fix it>'. "
        "Write each item as an instruction a developer can apply directly. "
        "Do not include any other text. If the pages match, reply with 'No mistakes found.'"
    )


def update_result_prompt() -> str:
    """Return the text accompanying the screenshot of the current version."""
    return "Here is a screenshot of the current version of the page; apply the instructions above to it."
