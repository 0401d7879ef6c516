"""Pixel theme: full-bleed background, frosted lower third, pixel font."""

import asyncio

from PIL import Image, ImageDraw, ImageFilter

from ogimage.themes.drawing import (
    cover,
    encode_png,
    load_background,
    pick_font,
    read_font_file,
    text_height,
    truncate,
    vertical_overlay,
)
from ogimage.themes.pixel_fonts import get_pixel_font_option
from ogimage.themes.types import IMAGE_HEIGHT, IMAGE_WIDTH, ThemeContext, ThemeDefinition, ThemeFont, ThemeProps

MARGIN = 64
OVERLAY_HEIGHT = 420
OVERLAY_STOPS = [(0.0, 166), (0.4, 115), (0.7, 38), (1.0, 0)]


async def load_fonts(context: ThemeContext) -> list[ThemeFont]:
    option = get_pixel_font_option(context.params.get("pixelFont"))
    data = await read_font_file(context.fonts_dir, option.file_path)
    if data is None:
        return []
    return [ThemeFont(name=option.font_name, data=data)]


def title_font_size(display_title: str) -> int:
    if len(display_title) > 40:
        return 56
    if len(display_title) > 25:
        return 72
    return 88


def _draw(props: ThemeProps, background: Image.Image, fonts: list[ThemeFont]) -> bytes:
    display_title = truncate(props.title, 60)
    display_excerpt = truncate(props.excerpt, 80)

    canvas = cover(background).convert("RGBA")

    # Frosted glass: blur the lower band, then darken it towards the bottom
    band_box = (0, IMAGE_HEIGHT - OVERLAY_HEIGHT, IMAGE_WIDTH, IMAGE_HEIGHT)
    band = canvas.crop(band_box).filter(ImageFilter.GaussianBlur(16))
    canvas.paste(band, band_box)
    canvas.alpha_composite(vertical_overlay(OVERLAY_HEIGHT, OVERLAY_STOPS), (0, band_box[1]))

    text_layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(text_layer)
    site_font = pick_font(fonts, 24)
    title_font = pick_font(fonts, title_font_size(display_title))
    excerpt_font = pick_font(fonts, 26)
    meta_font = pick_font(fonts, 20)

    meta = " \N{MIDDLE DOT} ".join(part for part in (props.author, props.date) if part)

    # Lay out bottom-up from the bottom margin
    y = IMAGE_HEIGHT - MARGIN
    if meta:
        y -= text_height(draw, meta, meta_font)
        draw.text((MARGIN, y), meta, font=meta_font, fill=(255, 255, 255, 140))
        y -= 28
    if display_excerpt:
        y -= text_height(draw, display_excerpt, excerpt_font)
        draw.text((MARGIN, y), display_excerpt, font=excerpt_font, fill=(255, 255, 255, 191))
        y -= 32
    y -= text_height(draw, display_title, title_font)
    draw.text((MARGIN, y), display_title, font=title_font, fill=(255, 255, 255, 255))
    y -= 28 + text_height(draw, props.site, site_font)
    draw.text((MARGIN, y), props.site, font=site_font, fill=(255, 255, 255, 230))

    canvas.alpha_composite(text_layer)
    return encode_png(canvas)


async def render(props: ThemeProps, context: ThemeContext, fonts: list[ThemeFont]) -> bytes:
    background = await load_background(props.background_image_src, context)
    return await asyncio.to_thread(_draw, props, background, fonts)


pixel_theme = ThemeDefinition(load_fonts=load_fonts, render=render, font_family="Zpix")
