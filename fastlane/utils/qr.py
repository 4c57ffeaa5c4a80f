"""QR code rendering"""

import base64
from io import BytesIO

import qrcode


def make_qr_data_url(data: str, box_size: int = 10, border: int = 2) -> str:
    """Render ``data`` as a black-on-white PNG QR code and return it as a data URL"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffered = BytesIO()
    img.save(buffered, format="PNG")
    encoded = base64.b64encode(buffered.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"
