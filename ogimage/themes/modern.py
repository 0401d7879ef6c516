"""Modern theme: dimmed background with a centered dark card, Inter font."""

import asyncio

from PIL import Image, ImageDraw

from ogimage.themes.drawing import (
    cover,
    encode_png,
    load_background,
    pick_font,
    read_font_file,
    text_height,
    truncate,
)
from ogimage.themes.types import IMAGE_HEIGHT, IMAGE_WIDTH, ThemeContext, ThemeDefinition, ThemeFont, ThemeProps

INTER_FILES = (("inter/Inter-Regular.ttf", 400), ("inter/Inter-Bold.ttf", 700))

CARD_WIDTH = 960
CARD_PADDING = 56


async def load_fonts(context: ThemeContext) -> list[ThemeFont]:
    results = await asyncio.gather(
        *(read_font_file(context.fonts_dir, path) for path, _ in INTER_FILES)
    )
    return [
        ThemeFont(name="Inter", data=data, weight=weight)
        for data, (_, weight) in zip(results, INTER_FILES)
        if data is not None
    ]


def title_font_size(display_title: str) -> int:
    if len(display_title) > 40:
        return 52
    if len(display_title) > 25:
        return 64
    return 76


def _draw(props: ThemeProps, background: Image.Image, fonts: list[ThemeFont]) -> bytes:
    display_title = truncate(props.title, 60)
    display_excerpt = truncate(props.excerpt, 80)

    canvas = cover(background).convert("RGBA")
    canvas.alpha_composite(Image.new("RGBA", canvas.size, (0, 0, 0, 64)))

    text_layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(text_layer)
    site_font = pick_font(fonts, 13, weight=700)
    title_font = pick_font(fonts, title_font_size(display_title), weight=700)
    excerpt_font = pick_font(fonts, 20)
    meta_font = pick_font(fonts, 14)

    site = props.site.upper()
    meta = " \N{MIDDLE DOT} ".join(part for part in (props.author, props.date) if part)

    blocks = [(site, site_font, (255, 255, 255, 140), 20)]
    blocks.append((display_title, title_font, (255, 255, 255, 255), 20))
    if display_excerpt:
        blocks.append((display_excerpt, excerpt_font, (255, 255, 255, 153), 24))
    if meta:
        blocks.append((meta, meta_font, (255, 255, 255, 102), 0))

    content_height = sum(text_height(draw, text, font) + gap for text, font, _, gap in blocks)
    card_height = content_height + 2 * CARD_PADDING
    left = (IMAGE_WIDTH - CARD_WIDTH) // 2
    top = (IMAGE_HEIGHT - card_height) // 2

    card = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(card).rounded_rectangle(
        [left, top, left + CARD_WIDTH, top + card_height], radius=24, fill=(0, 0, 0, 140)
    )
    canvas.alpha_composite(card)

    y = top + CARD_PADDING
    for text, font, fill, gap in blocks:
        draw.text((left + CARD_PADDING, y), text, font=font, fill=fill)
        y += text_height(draw, text, font) + gap

    canvas.alpha_composite(text_layer)
    return encode_png(canvas)


async def render(props: ThemeProps, context: ThemeContext, fonts: list[ThemeFont]) -> bytes:
    background = await load_background(props.background_image_src, context)
    return await asyncio.to_thread(_draw, props, background, fonts)


modern_theme = ThemeDefinition(load_fonts=load_fonts, render=render, font_family="Inter")
