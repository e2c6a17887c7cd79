from __future__ import annotations

from subburn.prompts.base import PromptSpec


# Literal braces: the system text is sent as-is, never formatted.
STYLE_ANALYSIS_PROMPT = PromptSpec(
    system="""You are an expert at analyzing subtitle and text styling in images. Analyze the provided image and extract all visual properties of any text/subtitles you find.

Return a JSON response with the following structure (provide realistic values based on what you observe):
{
  "fontFamily": "detected font name (e.g., 'Arial', 'Roboto', 'Inter')",
  "fontSize": number (estimated pixel size, typically 16-72),
  "fontWeight": "weight as string (e.g., '400', '600', '700')",
  "textColor": "hex color code (e.g., '#FFFFFF')",
  "strokeColor": "hex color of the text outline (e.g., '#000000')",
  "backgroundColor": "hex color for text background (e.g., '#000000')",
  "backgroundOpacity": number (0-100, estimated opacity percentage),
  "hasBackground": boolean (true if text has background/box),
  "textShadow": boolean (true if text has drop shadow or outline),
  "position": "bottom" | "top" | "center" (where text appears in image),
  "positionOffset": number (pixels from edge, typically 20-100),
  "maxWidth": number (percentage of image width, typically 60-95),
  "lineHeight": number (percentage, typically 100-150),
  "textTransform": "none" | "uppercase" | "lowercase" | "capitalize",
  "borderRadius": number (0-20, for background corners),
  "strokeWidth": number (0-5, text outline thickness),
  "animations": boolean (false for static images),
  "confidence": number (0.0-1.0, your confidence in the analysis)
}

Focus on: font style, colors, positioning, background styling, shadows, and overall visual treatment.""",
    template="{instructions}",
)

DEFAULT_STYLE_INSTRUCTIONS = (
    "Analyze all subtitle styling elements in this image including fonts, colors, "
    "positioning, backgrounds, and effects."
)
