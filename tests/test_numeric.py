"""
DTE-SV — Numeric utilities tests
Run: pytest tests/ -v
"""

import pytest

from dtesv.utils.numeric import monto_letras, numero_letras, redondear


class TestRedondear:
    def test_half_up(self):
        assert redondear(0.125) == 0.13
        assert redondear(2.5, 0) == 3.0

    def test_binary_error_compensated(self):
        assert redondear(1.005) == 1.01

    def test_idempotent_two_decimals(self):
        for valor in (12.34, 0.07, 99.99, 113.0, 0.1 + 0.2, 1234.565):
            once = redondear(valor)
            assert redondear(once) == once

    def test_eight_decimals(self):
        assert redondear(1 / 3, 8) == 0.33333333

    def test_zero(self):
        assert redondear(0) == 0.0


class TestNumeroLetras:
    @pytest.mark.parametrize("n,esperado", [
        (0, "CERO"),
        (15, "QUINCE"),
        (16, "DIECISEIS"),
        (21, "VEINTIUN"),
        (29, "VEINTINUEVE"),
        (35, "TREINTA Y CINCO"),
        (100, "CIEN"),
        (101, "CIENTO UN"),
        (500, "QUINIENTOS"),
        (999, "NOVECIENTOS NOVENTA Y NUEVE"),
        (1000, "MIL"),
        (2021, "DOS MIL VEINTIUN"),
        (21000, "VEINTIUN MIL"),
        (1_000_000, "UN MILLON"),
        (2_500_000, "DOS MILLONES QUINIENTOS MIL"),
    ])
    def test_words(self, n, esperado):
        assert numero_letras(n) == esperado


class TestMontoLetras:
    def test_zero(self):
        assert monto_letras(0) == "CERO DOLARES CON 00/100 USD"

    def test_cents_only(self):
        assert monto_letras(0.50) == "CINCUENTA CENTAVOS CON 50/100 USD"
        assert monto_letras(0.01) == "UN CENTAVO CON 01/100 USD"

    def test_singular_dollar(self):
        assert monto_letras(1.00) == "UN DOLAR CON 00/100 USD"
        assert monto_letras(1.50) == "UN DOLAR CON 50/100 USD"

    def test_plural_with_cents(self):
        assert monto_letras(121.05) == "CIENTO VEINTIUN DOLARES CON 05/100 USD"

    def test_invoice_total(self):
        assert monto_letras(113.00) == "CIENTO TRECE DOLARES CON 00/100 USD"

    def test_thousands(self):
        assert monto_letras(1500.99) == "MIL QUINIENTOS DOLARES CON 99/100 USD"

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            monto_letras(-1)
