"""
DTE-SV — Totals calculator tests
Política IVA incluido (01) vs IVA excluido (03 y demás).
"""

import pytest

from dtesv.core.catalogos import Catalogo, TipoDocumento
from dtesv.mh.totals import calcular_totales, iva_item
from dtesv.schemas.models import ItemFactura


def _item(n=1, gravada=0.0, exenta=0.0, no_suj=0.0, descu=0.0) -> ItemFactura:
    return ItemFactura(
        num_item=n, descripcion=f"Item {n}", cantidad=1,
        precio_uni=gravada or exenta or no_suj,
        venta_gravada=gravada, venta_exenta=exenta, venta_no_suj=no_suj, monto_descu=descu,
    )


class TestIvaItem:
    def test_inclusive(self):
        assert iva_item(113.0, "01") == 13.0

    def test_exclusive(self):
        assert iva_item(100.0, "03") == 13.0

    def test_non_positive(self):
        assert iva_item(0, "01") == 0.0
        assert iva_item(-5, "03") == 0.0


class TestCalcularTotales:
    def test_factura_tax_inclusive(self):
        t = calcular_totales([_item(gravada=113.0)], "01")
        assert t.total_gravada == 113.0
        assert t.sub_total_ventas == 113.0
        assert t.iva == 13.0
        assert t.total_pagar == 113.0
        assert t.monto_total_operacion == t.total_pagar

    def test_ccf_tax_exclusive(self):
        t = calcular_totales([_item(gravada=100.0)], "03")
        assert t.iva == 13.0
        assert t.total_pagar == 113.0

    def test_subtotal_identity(self):
        items = [_item(1, gravada=10.10), _item(2, exenta=5.05), _item(3, no_suj=2.02)]
        t = calcular_totales(items, "03")
        assert t.sub_total_ventas == pytest.approx(t.total_no_suj + t.total_exenta + t.total_gravada)
        assert t.sub_total_ventas == 17.17

    def test_inclusive_sums_per_item_tax(self):
        # 3 × redondear(1 - 1/1.13) = 0.36; sobre el agregado sería 0.35
        items = [_item(n, gravada=1.0) for n in (1, 2, 3)]
        assert calcular_totales(items, "01").iva == 0.36

    def test_exclusive_taxes_aggregate(self):
        # 3 × redondear(0.10 × 0.13) = 0.03; sobre el agregado 0.04
        items = [_item(n, gravada=0.10) for n in (1, 2, 3)]
        assert calcular_totales(items, "03").iva == 0.04

    def test_discount_inclusive(self):
        t = calcular_totales([_item(gravada=113.0, descu=13.0)], "01")
        assert t.total_descu == 13.0
        assert t.total_pagar == 100.0

    def test_discount_exclusive(self):
        t = calcular_totales([_item(gravada=100.0, descu=10.0)], "03")
        assert t.total_pagar == 103.0

    def test_fully_exempt(self):
        t = calcular_totales([_item(exenta=50.0)], "03")
        assert t.iva == 0.0
        assert t.total_pagar == 50.0

    def test_no_items(self):
        t = calcular_totales([], "01")
        assert t.model_dump() == {
            "total_no_suj": 0, "total_exenta": 0, "total_gravada": 0,
            "sub_total_ventas": 0, "total_descu": 0, "iva": 0, "total_pagar": 0,
        }

    def test_results_rounded(self):
        t = calcular_totales([_item(gravada=0.1), _item(2, gravada=0.2)], "03")
        assert t.total_gravada == 0.3
        assert t.iva == 0.04

    def test_injected_catalog(self):
        cat = Catalogo(tipos_documento=[
            TipoDocumento(codigo="03", descripcion="CCF", version=3, iva_incluido=True),
        ])
        t = calcular_totales([_item(gravada=113.0)], "03", cat)
        assert t.total_pagar == 113.0

    def test_totales_immutable(self):
        t = calcular_totales([_item(gravada=1.0)], "03")
        with pytest.raises(Exception):
            t.iva = 99
