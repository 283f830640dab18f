"""QR Image Encoder - renders credential text into a square QR image with qrcode + Pillow.

Invariants:
    - Output is a PIL image of exactly size x size pixels
    - error_correction is one of L, M, Q, H; anything else raises ValidationError
"""

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

from campusreg.core.errors import ValidationError

ERROR_CORRECTION_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


class QRCodeImageEncoder:
    """QREncoder backed by the qrcode library."""

    def __init__(self, border: int = 4, fill_color: str = "#000000", back_color: str = "#ffffff"):
        self.border = border
        self.fill_color = fill_color
        self.back_color = back_color

    def encode(self, text: str, size: int = 200, error_correction: str = "H"):
        level = ERROR_CORRECTION_LEVELS.get(error_correction.upper())
        if level is None:
            raise ValidationError(
                f"Unknown error correction level '{error_correction}'",
                field="error_correction",
            )
        qr = qrcode.QRCode(version=None, error_correction=level, box_size=10, border=self.border)
        qr.add_data(text)
        qr.make(fit=True)
        image = qr.make_image(fill_color=self.fill_color, back_color=self.back_color)
        return image.get_image().resize((size, size))
