"""
Framebuffer for the CHIP-8 VM
=============================

The CHIP-8 display is a 64 x 32 monochrome grid. Programs can only change
it in two ways:

- Clear the screen (00E0)
- XOR a sprite onto it (Dxyn)

Sprites are 8 pixels wide and 1-15 rows tall, one byte per row with the
most significant bit leftmost. Drawing XORs each sprite bit with the pixel
underneath; if any pixel is switched from on to off the draw reports a
collision, which the CPU stores in VF.

Edge behavior:
- Wrap (default): pixels past the right or bottom edge reappear on the
  opposite side.
- Clip: the starting coordinate wraps, but pixels past the edges are
  dropped. This is what the original COSMAC VIP interpreter did.

The CPU is the only writer. Renderers pull the buffer on their own cadence
through snapshot() and can use is_dirty() to skip unchanged frames.

Copyright (c) 2026 chip8-vm Contributors
"""

from typing import List

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
MAX_SPRITE_ROWS = 15


class Display:
    """
    64 x 32 monochrome framebuffer with XOR sprite drawing.

    Example:
        >>> display = Display()
        >>> display.draw_sprite(0, 0, bytes([0xF0]))
        False
        >>> display.get_pixel(3, 0)
        True
        >>> display.draw_sprite(0, 0, bytes([0xF0]))  # XOR erases it again
        True
    """

    WIDTH = DISPLAY_WIDTH
    HEIGHT = DISPLAY_HEIGHT

    def __init__(self, clip: bool = False):
        """
        Initialize an all-off framebuffer.

        Args:
            clip: Drop pixels past the edges instead of wrapping them
        """
        self._clip = clip
        self._pixels = bytearray(DISPLAY_WIDTH * DISPLAY_HEIGHT)
        self._dirty = True

    @property
    def clip(self) -> bool:
        """True if sprites are clipped at the edges instead of wrapped."""
        return self._clip

    def clear(self) -> None:
        """Switch every pixel off."""
        self._pixels = bytearray(DISPLAY_WIDTH * DISPLAY_HEIGHT)
        self._dirty = True

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """
        XOR a sprite onto the framebuffer.

        Args:
            x: Column of the sprite's top-left corner (wrapped modulo 64)
            y: Row of the sprite's top-left corner (wrapped modulo 32)
            sprite: Sprite rows, one byte each; only the first 15 are used

        Returns:
            True if any pixel was switched from on to off
        """
        x %= DISPLAY_WIDTH
        y %= DISPLAY_HEIGHT
        collision = False

        for row, bits in enumerate(sprite[:MAX_SPRITE_ROWS]):
            py = y + row
            if py >= DISPLAY_HEIGHT:
                if self._clip:
                    break
                py %= DISPLAY_HEIGHT

            for col in range(8):
                if not (bits & (0x80 >> col)):
                    continue
                px = x + col
                if px >= DISPLAY_WIDTH:
                    if self._clip:
                        break
                    px %= DISPLAY_WIDTH

                index = py * DISPLAY_WIDTH + px
                if self._pixels[index]:
                    collision = True
                self._pixels[index] ^= 1

        if sprite:
            self._dirty = True
        return collision

    def get_pixel(self, x: int, y: int) -> bool:
        """
        Get the state of one pixel.

        Raises:
            ValueError: If (x, y) is outside the 64 x 32 grid
        """
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            raise ValueError(f"Invalid pixel position ({x}, {y})")
        return bool(self._pixels[y * DISPLAY_WIDTH + x])

    def is_dirty(self) -> bool:
        """True if the framebuffer changed since the last snapshot()."""
        return self._dirty

    def snapshot(self) -> List[List[bool]]:
        """
        Get a copy of the framebuffer and mark it clean.

        Returns:
            32 rows of 64 booleans each (True = pixel on)
        """
        grid = [
            [bool(p) for p in self._pixels[row * DISPLAY_WIDTH:(row + 1) * DISPLAY_WIDTH]]
            for row in range(DISPLAY_HEIGHT)
        ]
        self._dirty = False
        return grid

    def count_lit(self) -> int:
        """Number of pixels currently on."""
        return sum(self._pixels)

    # =========================================================================
    # Text and Image Output (for testing and debugging)
    # =========================================================================

    def get_text(self, on: str = "#", off: str = ".") -> str:
        """
        Render the framebuffer as text, one line per pixel row.

        Does not clear the dirty flag.
        """
        lines = []
        for row in range(DISPLAY_HEIGHT):
            start = row * DISPLAY_WIDTH
            lines.append(
                "".join(on if p else off for p in self._pixels[start:start + DISPLAY_WIDTH])
            )
        return "\n".join(lines)

    def get_pixel_buffer(self) -> bytes:
        """
        Get display as pixel buffer.

        Returns:
            One byte per pixel, row-major, 255 for on and 0 for off
        """
        return bytes(255 if p else 0 for p in self._pixels)

    def render_image(
        self,
        scale: int = 8,
        ink_color: tuple = (255, 255, 255),
        paper_color: tuple = (0, 0, 0),
    ) -> bytes:
        """
        Render the framebuffer as a PNG image (requires Pillow).

        Args:
            scale: Size in image pixels of one display pixel
            ink_color: RGB tuple for pixels that are on
            paper_color: RGB tuple for pixels that are off

        Returns:
            PNG image bytes
        """
        from PIL import Image
        import io

        if scale < 1:
            raise ValueError(f"scale must be >= 1, got {scale}")

        img = Image.new("RGB", (DISPLAY_WIDTH, DISPLAY_HEIGHT), color=paper_color)
        for index, pixel in enumerate(self._pixels):
            if pixel:
                img.putpixel((index % DISPLAY_WIDTH, index // DISPLAY_WIDTH), ink_color)

        if scale != 1:
            img = img.resize(
                (DISPLAY_WIDTH * scale, DISPLAY_HEIGHT * scale),
                Image.Resampling.NEAREST,
            )

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def __repr__(self) -> str:
        return f"Display(lit={self.count_lit()}, dirty={self._dirty}, clip={self._clip})"
