"""Static PIX charge generation (BR Code payload plus QR image)."""
import asyncio
import base64
import io
from typing import NamedTuple, Optional, Protocol
import qrcode
import qrcode.image.svg
from qrcode.exceptions import DataOverflowError
from pix_provider.errors import CodeGenerationError

PIX_GUI = "br.gov.bcb.pix"
CURRENCY_BRL = "986"
MAX_NAME_LENGTH = 25
MAX_CITY_LENGTH = 15
MAX_TXID_LENGTH = 25


class Merchant(NamedTuple):
    key: Optional[str]
    name: Optional[str]
    city: Optional[str]


class GeneratedCode(NamedTuple):
    code: str
    image: str


class CodeGenerator(Protocol):
    async def generate(self, merchant: Merchant, amount: float, description: str, reference: str) -> GeneratedCode: ...


def crc16(payload: str) -> str:
    # CRC-16/CCITT-FALSE, as required by EMV QR payloads
    crc = 0xFFFF
    for byte in payload.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else crc << 1
            crc &= 0xFFFF
    return f"{crc:04X}"


def _field(tag: str, value: str) -> str:
    if len(value) > 99:
        raise CodeGenerationError(f"PIX field {tag} is longer than 99 characters.")
    return f"{tag}{len(value):02d}{value}"


def build_br_code(merchant: Merchant, amount: float, description: str, reference: str) -> str:
    if not (merchant.key and merchant.name and merchant.city):
        raise CodeGenerationError("PIX_KEY, PIX_NAME and PIX_CITY must be configured.")
    if len(merchant.name) > MAX_NAME_LENGTH:
        raise CodeGenerationError(f"Merchant name must be at most {MAX_NAME_LENGTH} characters.")
    if len(merchant.city) > MAX_CITY_LENGTH:
        raise CodeGenerationError(f"Merchant city must be at most {MAX_CITY_LENGTH} characters.")
    if not reference.isalnum() or len(reference) > MAX_TXID_LENGTH:
        raise CodeGenerationError("Transaction id must be alphanumeric, up to 25 characters.")

    account = _field("00", PIX_GUI) + _field("01", merchant.key)
    if description:
        account += _field("02", description)

    payload = (
        _field("00", "01")
        + _field("26", account)
        + _field("52", "0000")
        + _field("53", CURRENCY_BRL)
        + (_field("54", f"{amount:.2f}") if amount > 0 else "")
        + _field("58", "BR")
        + _field("59", merchant.name)
        + _field("60", merchant.city)
        + _field("62", _field("05", reference))
        + "6304"
    )
    return payload + crc16(payload)


def render_qr(code: str) -> str:
    try:
        image = qrcode.make(code, image_factory=qrcode.image.svg.SvgPathImage)
    except DataOverflowError as e:
        raise CodeGenerationError(f"PIX code does not fit in a QR code: {e}") from e
    buffer = io.BytesIO()
    image.save(buffer)
    return "data:image/svg+xml;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class PixCodeGenerator:
    async def generate(self, merchant: Merchant, amount: float, description: str, reference: str) -> GeneratedCode:
        return await asyncio.to_thread(self._generate, merchant, amount, description, reference)

    def _generate(self, merchant: Merchant, amount: float, description: str, reference: str) -> GeneratedCode:
        code = build_br_code(merchant, amount, description, reference)
        return GeneratedCode(code=code, image=render_qr(code))
