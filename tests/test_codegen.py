import base64
import pytest
from pix_provider.codegen import (
    GeneratedCode,
    Merchant,
    PixCodeGenerator,
    build_br_code,
    crc16,
    render_qr,
)
from pix_provider.errors import CodeGenerationError

MERCHANT = Merchant("pix@example.com", "Loja Teste", "Sao Paulo")
TXID = "0123456789abcdef012345678"


def test_crc16_check_value():
    # CRC-16/CCITT-FALSE check value
    assert crc16("123456789") == "29B1"


def test_build_br_code_layout():
    code = build_br_code(MERCHANT, 10.0, "order-1", TXID)

    assert code.startswith("000201")
    assert "0014br.gov.bcb.pix" in code
    assert "0115pix@example.com" in code
    assert "0207order-1" in code
    assert "5303986" in code
    assert "540510.00" in code
    assert "5802BR" in code
    assert "5910Loja Teste" in code
    assert "6009Sao Paulo" in code
    assert f"62290525{TXID}" in code
    assert code[-8:-4] == "6304"
    assert code[-4:] == crc16(code[:-4])


def test_build_br_code_without_description():
    code = build_br_code(MERCHANT, 5.0, "", TXID)

    assert "0014br.gov.bcb.pix0115pix@example.com52040000" in code


@pytest.mark.parametrize("merchant, reference", [
    (Merchant(None, "Loja Teste", "Sao Paulo"), TXID),
    (Merchant("pix@example.com", None, "Sao Paulo"), TXID),
    (Merchant("pix@example.com", "Loja Teste", ""), TXID),
    (Merchant("pix@example.com", "A very long merchant name here", "Sao Paulo"), TXID),
    (Merchant("pix@example.com", "Loja Teste", "Sao Jose dos Campos"), TXID),
    (MERCHANT, "not-alnum"),
    (MERCHANT, "x" * 26),
])
def test_build_br_code_rejects_bad_parameters(merchant, reference):
    with pytest.raises(CodeGenerationError):
        build_br_code(merchant, 10.0, "order-1", reference)


def test_build_br_code_rejects_oversized_description():
    with pytest.raises(CodeGenerationError):
        build_br_code(MERCHANT, 10.0, "d" * 90, TXID)


def test_render_qr_returns_svg_data_uri():
    image = render_qr("000201")

    prefix = "data:image/svg+xml;base64,"
    assert image.startswith(prefix)
    assert b"<svg" in base64.b64decode(image[len(prefix):])


@pytest.mark.asyncio
async def test_generator_returns_code_and_image():
    generated = await PixCodeGenerator().generate(MERCHANT, 10.0, "order-1", TXID)

    assert isinstance(generated, GeneratedCode)
    assert generated.code == build_br_code(MERCHANT, 10.0, "order-1", TXID)
    assert generated.image.startswith("data:image/svg+xml;base64,")
