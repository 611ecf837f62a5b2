"""
Prompt Templates
Turns a brand profile plus a visual request into the job-ticket prompt sent to
the image model, and builds caption prompts for the text model.

Templates use {{TOKEN}} placeholders. Admin overrides stored in the
system_prompts table are used only when they carry every required token;
otherwise the compiled-in default applies.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

from app.schemas.business import BrandProfile
from app.schemas.generate import SubjectContext, StylePreset, GenerationStrategy

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\{\{([A-Z0-9_]+)\}\}")
BLANK_RUNS = re.compile(r"\n{3,}")

REQUIRED_IMAGE_TOKENS = ("BUSINESS_NAME", "VISUAL_PROMPT")

DEFAULT_IMAGE_TEMPLATE = """
## JOB TICKET #{{TICKET_ID}}
MISSION: Deliver one finished, ready-to-publish {{ASPECT_RATIO}} marketing visual for {{BUSINESS_NAME}} ({{INDUSTRY}}).
You are both the art director and the copywriter. Treat every source fact as true and use it exactly as written.

CLIENT REQUEST:
{{VISUAL_PROMPT}}

### SOURCE FACTS (USE AS WRITTEN)
{{SOURCE_FACTS}}

### CREATIVE GAPS (YOU WRITE THESE)
{{CREATIVE_GAPS}}

### VISUAL EXECUTION
{{VISUAL_EXECUTION}}
"""

COPY_STRATEGY_HINTS = {
    "benefit": "Lead with the single strongest benefit.",
    "problem_solution": "Name the customer's problem, then present the offer as the fix.",
    "urgent": "Create urgency: limited time, act now.",
    "minimal": "Keep copy to the headline and CTA only; leave body copy out.",
}

DEFAULT_CAPTION_SYSTEM_PROMPT = """You are an expert social media copywriter. Given context about a business and an image description, write an engaging social media caption.

RULES:
1. Keep it concise (2-4 sentences max for Instagram, 1-2 for Twitter)
2. Match the brand voice and tone
3. Include a clear call-to-action when appropriate
4. Follow the HASHTAG RULES provided in each request
5. Use emojis sparingly and tastefully (1-3 max)
6. Never be generic - make it specific to THIS business

PLATFORM NUANCES:
- Instagram: Storytelling, lifestyle, emojis welcome
- LinkedIn: Professional, value-focused, minimal emojis
- Facebook: Conversational, community-focused
- Twitter: Punchy, witty, under 280 chars

Return ONLY the caption text. No explanations."""


@dataclass
class PromptContext:
    """Marketing context for one generation request."""
    aspect_ratio: str = "1:1"
    subject: Optional[SubjectContext] = None
    style_preset: Optional[StylePreset] = None
    strategy: Optional[GenerationStrategy] = None
    target_audience: Optional[str] = None
    extra_negative: List[str] = field(default_factory=list)

    @property
    def preserve_likeness(self) -> bool:
        if self.subject and self.subject.preserve_likeness:
            return True
        return bool(self.strategy and self.strategy.strict_likeness)


# ---------------------------------------------------------------------------
# Template handling
# ---------------------------------------------------------------------------

def find_tokens(template: str) -> List[str]:
    """Return the distinct {{TOKEN}} names in a template, in order of appearance."""
    seen = []
    for name in TOKEN_PATTERN.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def validate_template(template: Optional[str], required=REQUIRED_IMAGE_TOKENS) -> List[str]:
    """Return the required tokens missing from a template (empty list = valid)."""
    if not template or not template.strip():
        return list(required)
    present = set(find_tokens(template))
    return [token for token in required if token not in present]


def normalize_block(text: str) -> str:
    """Collapse runs of blank lines and trim; used on template and section text only."""
    return BLANK_RUNS.sub("\n\n", text).strip()


def render_template(template: str, values: Dict[str, str]) -> str:
    """
    Substitute every occurrence of each known token in a single pass.

    Substituted values are not scanned again, so token-like text inside a
    value stays literal. Tokens without a value are left in place.
    """
    return TOKEN_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), normalize_block(template))


def resolve_image_template(override: Optional[str]) -> str:
    """Pick the admin override when it is well-formed, else the default."""
    if override is None or not override.strip():
        return DEFAULT_IMAGE_TEMPLATE
    missing = validate_template(override)
    if missing:
        logger.warning(
            f"[Prompts] Ignoring image template override, missing tokens: {', '.join(missing)}"
        )
        return DEFAULT_IMAGE_TEMPLATE
    return override


def load_image_template(db) -> str:
    """Fetch the image template override (if any) and resolve it."""
    from app.models.system_prompt import SystemPrompt

    row = db.query(SystemPrompt).order_by(SystemPrompt.id).first()
    return resolve_image_template(row.image_gen_rules if row else None)


def load_caption_system_prompt(db) -> str:
    from app.models.system_prompt import SystemPrompt

    row = db.query(SystemPrompt).order_by(SystemPrompt.id).first()
    if row and row.caption_rules and row.caption_rules.strip():
        return row.caption_rules
    return DEFAULT_CAPTION_SYSTEM_PROMPT


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------

def ticket_id(now: Optional[datetime] = None) -> str:
    return (now or datetime.utcnow()).strftime("%Y%m%d-%H%M%S")


def build_visual_prompt(prompt: str, subject: Optional[SubjectContext]) -> str:
    """Append the primary-subject line to the user's request."""
    if not subject or not subject.type:
        return prompt
    line = f"PRIMARY SUBJECT: {subject.type}."
    if subject.preserve_likeness:
        line += " Maintain strict visual likeness."
    return f"{prompt}\n{line}"


def _palette(brand: BrandProfile) -> str:
    parts = []
    if brand.colors.primary:
        parts.append(f"Primary {brand.colors.primary}")
    if brand.colors.secondary:
        parts.append(f"Secondary {brand.colors.secondary}")
    if brand.colors.accent:
        parts.append(f"Accent {brand.colors.accent}")
    return ", ".join(parts)


def _tone(brand: BrandProfile) -> str:
    if brand.voice.tone:
        return brand.voice.tone
    return ", ".join(brand.voice.tone_pills)


def _negative_constraints(brand: BrandProfile, context: PromptContext) -> str:
    items = []
    if context.style_preset:
        items.extend(context.style_preset.avoid)
    items.extend(context.extra_negative)
    items.extend(brand.voice.negative_keywords)
    return ", ".join(item for item in items if item)


def build_source_facts(brand: BrandProfile, context: PromptContext) -> str:
    lines = [f"- Business: {brand.name}"]
    if brand.industry:
        lines.append(f"- Industry: {brand.industry}")
    palette = _palette(brand)
    if palette:
        lines.append(f"- Brand colors: {palette}")
    tone = _tone(brand)
    if tone:
        lines.append(f"- Brand tone: {tone}")
    if brand.voice.slogan:
        lines.append(f'- Slogan: "{brand.voice.slogan}"')
    if brand.voice.keywords:
        lines.append(f"- Keywords: {', '.join(brand.voice.keywords)}")

    location = brand.profile.public_location_label or brand.profile.address
    if location:
        lines.append(f"- Location: {location}")
    website = brand.website or brand.profile.website
    contact = [c for c in (brand.profile.contact_phone, brand.profile.contact_email, website) if c]
    if contact:
        lines.append(f"- Contact: {' | '.join(contact)}")
    if brand.profile.booking_url:
        lines.append(f"- Booking: {brand.profile.booking_url}")

    subject = context.subject
    strategy = context.strategy or GenerationStrategy()
    if subject and (subject.name or subject.type):
        label = subject.name or subject.type
        lines.append("")
        lines.append(f"SUBJECT: {label}")
        if subject.is_free:
            lines.append("- Price: FREE")
        elif subject.price and strategy.show_price:
            lines.append(f"- Price: {subject.price}")

    if subject and subject.promotion and strategy.show_promo:
        lines.append("")
        lines.append(f"PROMOTION: {subject.promotion}")

    if subject and subject.benefits:
        lines.append("")
        lines.append("KEY BENEFITS:")
        lines.extend(f"- {benefit}" for benefit in subject.benefits)

    if context.target_audience:
        lines.append("")
        lines.append(f"TARGET AUDIENCE: {context.target_audience}")

    return "\n".join(lines)


def build_creative_gaps(brand: BrandProfile, context: PromptContext) -> str:
    strategy = context.strategy
    language = brand.ad_preferences.target_language or "English"

    if strategy and strategy.custom_cta:
        cta = f'use exactly "{strategy.custom_cta}".'
    elif brand.ad_preferences.preferred_cta:
        cta = f'base it on "{brand.ad_preferences.preferred_cta}".'
    else:
        cta = "a short action phrase (2-4 words)."

    lines = [
        f"Invent the following in {language}, grounded only in the source facts, and render them with perfect spelling:",
        "- HEADLINE: up to 6 words, the hook of the ad.",
        "- SUB-HEADER: one line that supports the headline.",
        "- BODY COPY: one short sentence.",
        f"- CTA: {cta}",
    ]
    if strategy and strategy.copy_strategy in COPY_STRATEGY_HINTS:
        lines.append(f"Copy approach: {COPY_STRATEGY_HINTS[strategy.copy_strategy]}")
    return "\n".join(lines)


def build_visual_execution(brand: BrandProfile, context: PromptContext) -> str:
    lines = []
    subject = context.subject
    preset = context.style_preset
    preset_config = (preset.config or {}) if preset else {}

    if subject and subject.image_url:
        if context.preserve_likeness:
            lines.append(
                "- SUBJECT: The MAIN PRODUCT reference image is the hero. Reproduce it with strict likeness: "
                "same shape, colors, labels and proportions. Do not redesign it."
            )
        else:
            lines.append("- SUBJECT: Use the MAIN PRODUCT reference image as the hero of the composition.")
    elif context.preserve_likeness:
        lines.append("- SUBJECT: Keep the described subject true to life; do not stylize its defining features.")

    if brand.logo_url:
        logo = (
            "- LOGO: The BUSINESS LOGO reference image must appear as a physical part of the scene "
            "(signage, packaging, print), matching scene lighting and perspective. Preserve all lettering exactly."
        )
        application = preset_config.get("brandApplication") or {}
        if application.get("integrationMethod") or application.get("materiality"):
            treatment = ", ".join(
                v for v in (application.get("integrationMethod"), application.get("materiality")) if v
            )
            logo += f" Treatment: {treatment}."
        lines.append(logo)

    if preset:
        style = f"- STYLE: {preset.name}" if preset.name else "- STYLE:"
        if preset.prompt_modifier:
            style += f". {preset.prompt_modifier}"
        lines.append(style)
        if preset.style_cues:
            lines.append(f"- STYLE CUES: {', '.join(preset.style_cues)}")
        if preset.active_reference_urls() or preset.image_url:
            lines.append("- STYLE REFERENCES: Match the look, palette and finish of the STYLE reference images. Do not copy their content.")

    compliance = [
        text for text in (
            brand.ad_preferences.compliance_text,
            subject.terms_and_conditions if subject else None,
        ) if text
    ]
    if compliance:
        lines.append(f"- COMPLIANCE: Render in small legible type along the bottom edge: {' '.join(compliance)}")

    negative = _negative_constraints(brand, context)
    if negative:
        lines.append(f"- DO NOT INCLUDE: {negative}")

    lighting = preset_config.get("lighting") or {}
    if lighting.get("style"):
        lines.append(f"- LIGHTING: {lighting['style']}" + (f", {lighting['quality']}" if lighting.get("quality") else ""))
    else:
        lines.append("- LIGHTING: Commercial-grade lighting; carry the brand colors into light, background or props.")

    return "\n".join(lines)


def template_values(
    brand: BrandProfile,
    visual_prompt: str,
    context: PromptContext,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """The full token set available to default and override templates."""
    return {
        "TICKET_ID": ticket_id(now),
        "ASPECT_RATIO": context.aspect_ratio,
        "BUSINESS_NAME": brand.name,
        "INDUSTRY": brand.industry or "General",
        "COLOR_PRIMARY": brand.colors.primary or "",
        "COLOR_SECONDARY": brand.colors.secondary or "",
        "COLOR_ACCENT": brand.colors.accent or "",
        "TONE": _tone(brand),
        "KEYWORDS": ", ".join(brand.voice.keywords),
        "NEGATIVE_CONSTRAINTS": _negative_constraints(brand, context),
        "VISUAL_PROMPT": visual_prompt,
        "SOURCE_FACTS": normalize_block(build_source_facts(brand, context)),
        "CREATIVE_GAPS": normalize_block(build_creative_gaps(brand, context)),
        "VISUAL_EXECUTION": normalize_block(build_visual_execution(brand, context)),
    }


def build_image_prompt(
    brand: BrandProfile,
    visual_prompt: str,
    context: Optional[PromptContext] = None,
    template: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Render the job-ticket prompt for the image model.

    Args:
        brand: Business snapshot
        visual_prompt: User request (already augmented with the subject line)
        context: Marketing context (subject, style, strategy, audience)
        template: Resolved template; defaults to the compiled-in job ticket
        now: Clock used for the ticket id

    Returns:
        The prompt string
    """
    context = context or PromptContext()
    if context.target_audience is None:
        context = replace(
            context,
            target_audience=(context.subject.target_audience if context.subject else None)
            or brand.ad_preferences.target_audience,
        )
    values = template_values(brand, visual_prompt, context, now=now)
    return render_template(template or DEFAULT_IMAGE_TEMPLATE, values)


def build_freedom_prompt(brand: BrandProfile, user_prompt: str, aspect_ratio: str = "1:1") -> str:
    """Simplified prompt: brand palette and logo only, no mandatory business info."""
    palette = ", ".join(c for c in (brand.colors.primary, brand.colors.secondary, brand.colors.accent) if c)
    lines = [
        "## CREATIVE FREEDOM MODE",
        "",
        f"You are generating a creative visual for {brand.name or 'a brand'}.",
        "",
        "### USER'S VISION",
        user_prompt,
        "",
        "### BRAND CONTEXT",
        f"- **Color Palette:** {palette or 'modern brand colors'}",
    ]
    if brand.logo_url:
        lines.append("- **Logo:** Brand logo is provided as an input image.")
    lines += [
        "",
        "### GUIDELINES",
        f"- **Aspect ratio:** {aspect_ratio}",
        "- **Logo integration:** The logo must look like part of the design, not pasted on afterwards. "
        "Match the color grading, texture and lighting of the rest of the piece.",
        "- All text must be diegetic (part of the scene) and spelled correctly.",
        "- The user's prompt is the priority.",
        "- No contact info, business hours, address, slogan, or compliance text unless the user explicitly asks for it.",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Captions
# ---------------------------------------------------------------------------

def build_hashtag_instruction(hashtag_mode: str = "ai_plus_brand", brand_hashtags: Optional[List[str]] = None) -> str:
    tags = " ".join(f"#{tag.lstrip('#')}" for tag in (brand_hashtags or []) if tag)

    if hashtag_mode == "brand_only":
        if not tags:
            return "No brand hashtags provided. Add 3-5 relevant industry hashtags."
        return f"Use ONLY these brand hashtags at the end: {tags}. Do NOT add any other hashtags."
    if hashtag_mode == "ai_only":
        return "Generate 3-5 relevant hashtags based on the content and industry. Do NOT use any provided brand hashtags."
    if tags:
        return f"Always include these brand hashtags: {tags}. You may add 1-2 additional relevant hashtags."
    return "Generate 3-5 relevant hashtags based on the content and industry."


def build_caption_prompt(request) -> str:
    """User prompt for the caption model from a CaptionRequest."""
    business = request.business
    voice = business.voice
    if voice:
        voice_context = (
            f"Brand Voice: {voice.archetype or 'Professional'}. "
            f"Tone: {', '.join(voice.tone_pills) or 'Engaging'}."
        )
        if voice.slogan:
            voice_context += f' Slogan: "{voice.slogan}"'
    else:
        voice_context = "Brand Voice: Professional and engaging."

    return "\n".join([
        f"BUSINESS: {business.name}",
        f"INDUSTRY: {business.industry or 'General'}",
        f"TARGET AUDIENCE: {business.target_audience or 'General audience'}",
        voice_context,
        f"PLATFORM: {request.platform}",
        "",
        f"HASHTAG RULES: {build_hashtag_instruction(request.hashtag_mode, request.brand_hashtags)}",
        "",
        "IMAGE/CONTENT DESCRIPTION:",
        request.asset_prompt,
        "",
        "Write the caption now:",
    ])
