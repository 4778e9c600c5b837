"""
LLM prompts for the investigate endpoint.
The prompt is assembled server-side so clients cannot tamper with it.
"""

# ============================================================================
# INVESTIGATION PROMPT
# ============================================================================

INVESTIGATION_PROMPT = """You are an expert investigative journalist and fact-checker working for "The Truth Gazette".

Analyze the provided content and determine if it contains FAKE NEWS, REAL NEWS, or if the verdict is UNCERTAIN.

Consider these factors:
- Sensational or clickbait language
- Emotional manipulation tactics
- Lack of credible sources or citations
- Extreme or unverifiable claims
- Professional journalistic tone vs. opinion-based writing
- Presence of verifiable facts and evidence
- URL credibility (if provided)
- Image context and claims (if image provided)
"""

TEXT_SECTION = """
TEXT TO ANALYZE:
"{text}"
"""

URL_SECTION = """
URL PROVIDED: {url}
Please use your knowledge and if possible cite credible sources to verify information from this URL and check its credibility.
"""

IMAGE_SECTION = """
IMAGE INCLUDED: OCR text (if available) has been included above. Please analyze the image context and verify any claims.
"""

IMAGE_WITHOUT_TEXT_SECTION = """
NOTE: No readable text was detected in the provided image. Please analyze the image visually: describe visual elements, \
assess whether the image supports or contradicts factual claims, suggest concrete search queries that a researcher could \
use to ground or verify the image (e.g., reverse-image or news search terms), and avoid returning 'No content' as a final \
answer if the image contains verifiable visual evidence.
"""

RESPONSE_FORMAT_SECTION = """
Respond in the following JSON format:
{
  "verdict": "FAKE" or "REAL" or "UNCERTAIN",
  "confidence": [number between 65-95],
  "confidence_explanation": "[Brief justification for the numeric confidence]",
  "headline": "[Create a dramatic newspaper-style headline about your verdict]",
  "analysis": "[Detailed explanation as if writing a newspaper article, 2-3 short paragraphs]",
  "keyFactors": ["factor1", "factor2"],
  "sources": [ {"title": "source title", "url": "https://...", "date": "YYYY-MM-DD", "excerpt": "quoted text"} ]
}

IMPORTANT: Provide real verifiable URLs when available from reputable institutions (government, major news \
organizations, research orgs). If only community or opinion sources are found, do not provide them in the 'sources' output.
"""

NO_FABRICATION_SECTION = """
CRITICAL: Do NOT invent, rewrite, or normalize source URLs or publication dates. If you cannot find a reliable URL for a \
claim, respond with {"url":"SOURCE_UNAVAILABLE"} and do not fabricate one. When stating a publication date, include the \
exact text excerpt that supports it from the source.
"""

# ============================================================================
# NO-CONTENT RE-RUN
# ============================================================================

NO_CONTENT_HINT = """
IMPORTANT: The user provided the following text extracted from the image or input, you MUST analyze it and not return a \
"no content" response.
\"\"\"{text}
\"\"\"
Please re-evaluate and produce the JSON output as requested.
"""

# Phrases that indicate the model ignored the supplied content
NO_CONTENT_PHRASES = (
    "no content",
    "no material",
    "no input provided",
    "there's no content",
    "nothing to investigate",
)


def build_investigation_prompt(text: str, url: str, has_image: bool) -> str:
    prompt = INVESTIGATION_PROMPT
    if text:
        prompt += TEXT_SECTION.format(text=text)
    if url:
        prompt += URL_SECTION.format(url=url)
    if has_image:
        prompt += IMAGE_SECTION
        if not text:
            prompt += IMAGE_WITHOUT_TEXT_SECTION
    prompt += RESPONSE_FORMAT_SECTION
    prompt += NO_FABRICATION_SECTION
    return prompt
