"""
DTE-SV — Libro Legal tests
Compras, ventas a contribuyentes y consumidor final; CSV y XLSX.
"""

import io

import openpyxl
import pytest

from dtesv.schemas.models import ModoLibro, ProcessedDocument
from dtesv.services.libro_legal import (
    LIBROS, exportar_csv, exportar_xlsx, generar_libro, get_config_libro, meses_disponibles, parse_csv_libro,
)

MES = "2025-03"


def _doc(n: int, fec_emi: str, tipo_dte: str = "03", **campos) -> ProcessedDocument:
    base = dict(
        id=f"doc-{n}",
        file_name=f"doc-{n}.json",
        is_valid=True,
        month=fec_emi[:7],
        mode=ModoLibro.VENTAS,
        fec_emi=fec_emi,
        fecha="/".join(reversed(fec_emi.split("-"))),
        numero_control=f"DTE-{tipo_dte}-M001P001-{n:015d}",
        codigo_generacion=f"AAAAAAAA-BBBB-4CCC-8DDD-{n:012d}",
        tipo_dte=tipo_dte,
        contraparte=f"CONTRAPARTE {n}",
        nrc_contraparte=f"{n}23456",
    )
    base.update(campos)
    return ProcessedDocument(**base)


class TestConfig:
    def test_known_types(self):
        assert set(LIBROS) == {"compras", "contribuyentes", "consumidor"}
        assert get_config_libro("compras").titulo == "LIBRO DE COMPRAS"

    def test_unknown_type(self):
        assert get_config_libro("inventario") is None

    def test_meses_disponibles(self):
        grouped = {"2025-04": [], "2024-12": [], "2025-01": []}
        assert meses_disponibles(grouped) == ["2024-12", "2025-01", "2025-04"]


class TestLibroCompras:
    def setup_method(self):
        self.docs = [
            _doc(2, "2025-03-20", total_gravada=200.0, iva=26.0, total=226.0, iva_retenido=2.0),
            _doc(1, "2025-03-05", total_exenta=10.0, total_gravada=100.0, iva=13.0, total=123.0),
            _doc(3, "2025-03-10", tipo_dte="14", nit_contraparte="01234567-8", total=50.0),
        ]
        self.result = generar_libro({MES: self.docs}, "compras", MES)

    def test_sorted_with_correlatives(self):
        assert [f["correlativo"] for f in self.result.filas] == [1, 2, 3]
        assert [f["fecha"] for f in self.result.filas] == ["05/03/2025", "10/03/2025", "20/03/2025"]

    def test_row_projection(self):
        fila = self.result.filas[0]
        assert fila["codigoGeneracion"] == "AAAAAAAABBBB4CCC8DDD000000000001"
        assert fila["nombreProveedor"] == "CONTRAPARTE 1"
        assert fila["comprasExentas"] == 10.0
        assert fila["comprasGravadasLocales"] == 100.0
        assert fila["creditoFiscal"] == 13.0
        assert fila["totalCompras"] == 123.0
        assert fila["nitSujetoExcluido"] == ""
        assert fila["comprasSujetoExcluido"] == 0.0

    def test_fse_row(self):
        fila = self.result.filas[1]
        assert fila["nitSujetoExcluido"] == "01234567-8"
        assert fila["comprasSujetoExcluido"] == 50.0
        assert fila["comprasGravadasLocales"] == 0.0
        assert fila["creditoFiscal"] == 0.0

    def test_withholding(self):
        assert self.result.filas[2]["retencionTerceros"] == 2.0

    def test_totals(self):
        assert self.result.totales["totalCompras"] == 399.0
        assert self.result.totales["creditoFiscal"] == 39.0

    def test_no_resumen(self):
        assert self.result.resumen == []
        assert self.result.resumen_titulo is None


class TestLibroContribuyentes:
    def setup_method(self):
        docs = [
            _doc(1, "2025-03-02", total_gravada=100.0, iva=13.0, total=113.0, iva_percibido=1.0),
            _doc(2, "2025-03-03", total_exenta=40.0, total=40.0),
            _doc(3, "2025-03-04", tipo_dte="11", total_gravada=500.0, total=500.0),
        ]
        self.result = generar_libro({MES: docs}, "contribuyentes", MES)

    def test_rows(self):
        primera, segunda, exportacion = self.result.filas
        assert primera["ventasGravadas"] == 100.0
        assert primera["debitoFiscal"] == 13.0
        assert primera["impuestoPercibido"] == 1.0
        assert primera["formUnico"] == ""
        assert primera["ventaCuentaTerceros"] == 0.0
        assert segunda["ventasExentas"] == 40.0
        assert exportacion["exportaciones"] == 500.0
        assert exportacion["ventasGravadas"] == 0.0

    def test_resumen(self):
        assert self.result.resumen_titulo == "RESUMEN DE OPERACIONES"
        assert len(self.result.resumen) == 7
        gravadas, consumidores, total_gravadas, exentas, _, total_exentas, exportaciones = self.result.resumen
        assert gravadas["valorNeto"] == 100.0
        assert gravadas["debitoFiscal"] == 13.0
        assert consumidores["valorNeto"] == 0.0
        assert total_gravadas["valorNeto"] == 100.0
        assert exentas["valorNeto"] == 40.0
        assert total_exentas["valorNeto"] == 40.0
        assert exportaciones["valorNeto"] == 500.0

    def test_totals(self):
        assert self.result.totales["ventasTotales"] == 653.0
        assert self.result.totales["ventaCuentaTerceros"] == 0.0


class TestLibroConsumidor:
    def setup_method(self):
        docs = [
            _doc(1, "2025-03-02", tipo_dte="01", total_gravada=113.0, total=113.0),
            _doc(2, "2025-03-01", tipo_dte="01", total_gravada=56.5, total_exenta=5.0, total=61.5),
        ]
        self.result = generar_libro({MES: docs}, "consumidor", MES)

    def test_rows_have_no_correlative(self):
        assert all("correlativo" not in f for f in self.result.filas)

    def test_ranges(self):
        fila = self.result.filas[0]
        assert fila["codigoGeneracionInicial"] == fila["codigoGeneracionFinal"] == "AAAAAAAABBBB4CCC8DDD000000000002"
        assert fila["numeroControlDel"] == "DTE01M001P001000000000000002"
        assert fila["ventasGravadas"] == 56.5
        assert fila["ventaTotal"] == 61.5

    def test_resumen_debito_fiscal(self):
        neto, impuesto, bruto = self.result.resumen
        assert bruto["valor"] == 169.5
        assert neto["valor"] == 150.0
        assert impuesto["valor"] == 19.5
        assert neto["label"] == "VENTAS INTERNAS GRAVADAS NETAS"

    def test_gross_includes_itemized_tax(self):
        doc = _doc(9, "2025-03-09", tipo_dte="03", total_gravada=100.0, iva=13.0, total=113.0)
        result = generar_libro({MES: [doc]}, "consumidor", MES)
        assert result.filas[0]["ventasGravadas"] == 113.0


class TestEdgeCases:
    def test_empty_month(self):
        result = generar_libro({}, "compras", MES)
        assert result.error is None
        assert result.filas == []
        assert result.totales
        assert all(v == 0.0 for v in result.totales.values())

    def test_unknown_type_is_error_not_empty(self):
        result = generar_libro({MES: [_doc(1, "2025-03-01")]}, "inventario", MES)
        assert result.error == "Configuración no encontrada para tipoLibro: inventario"
        assert result.filas == []
        assert not result.ok

    def test_other_months_ignored(self):
        result = generar_libro({"2025-04": [_doc(1, "2025-04-01")]}, "contribuyentes", MES)
        assert result.filas == []


class TestExport:
    def setup_method(self):
        docs = [
            _doc(1, "2025-03-05", total_gravada=100.0, iva=13.0, total=113.0),
            _doc(2, "2025-03-06", total_gravada=0.1, iva=0.01, total=0.11),
            _doc(3, "2025-03-07", tipo_dte="14", nit_contraparte="01234567-8", total=25.55),
        ]
        self.result = generar_libro({MES: docs}, "compras", MES)

    def test_csv_layout(self):
        lineas = exportar_csv(self.result).split("\n")
        assert lineas[0].startswith("CORRELATIVO;FECHA;CÓDIGO GENERACIÓN;NRC;NIT SUJETO EXCLUIDO;")
        assert lineas[1].startswith("1;05/03/2025;")
        assert len(lineas) == 6  # encabezado + 3 filas + totales + ""
        assert lineas[-1] == ""

    def test_csv_error_result(self):
        with pytest.raises(ValueError):
            exportar_csv(generar_libro({}, "inventario", MES))

    def test_xlsx(self):
        data = exportar_xlsx(self.result, emisor_nombre="EMPRESA DEMO")
        assert data[:2] == b"PK"
        ws = openpyxl.load_workbook(io.BytesIO(data)).active
        assert ws["A1"].value == "LIBRO DE COMPRAS - 2025-03"
        assert ws.cell(row=4, column=1).value == "CORRELATIVO"
        assert ws.cell(row=5, column=1).value == 1
        assert ws.freeze_panes == "A5"
        assert ws.cell(row=8, column=1).value == "TOTALES"

    def test_xlsx_resumen_section(self):
        result = generar_libro({MES: [_doc(1, "2025-03-01", total_gravada=100.0, iva=13.0, total=113.0)]},
                               "contribuyentes", MES)
        ws = openpyxl.load_workbook(io.BytesIO(exportar_xlsx(result))).active
        assert ws.cell(row=8, column=1).value == "RESUMEN DE OPERACIONES"
        assert ws.cell(row=9, column=1).value == "VENTAS NETAS INTERNAS GRAVADAS A CONTRIBUYENTES"


# ─────────────────────────────────────────────────────────────
# TOTALES = SUMA DE COLUMNAS, EN LOS TRES LIBROS
# ─────────────────────────────────────────────────────────────

def _mes_mixto() -> dict[str, list[ProcessedDocument]]:
    docs = [
        _doc(1, "2025-03-05", tipo_dte="01", total_gravada=113.0, total_exenta=7.35, total=120.35),
        _doc(2, "2025-03-06", total_gravada=0.1, iva=0.01, total=0.11, iva_retenido=0.01),
        _doc(3, "2025-03-07", total_gravada=33.33, iva=4.33, total=37.66, iva_percibido=0.33),
        _doc(4, "2025-03-08", tipo_dte="11", total_gravada=250.55, total=250.55),
        _doc(5, "2025-03-09", tipo_dte="14", nit_contraparte="01234567-8", total=25.55),
        _doc(6, "2025-03-10", total_exenta=19.99, total_no_suj=1.01, total=21.0),
    ]
    return {MES: docs}


@pytest.mark.parametrize("tipo", ["compras", "contribuyentes", "consumidor"])
class TestTotalsPorLibro:
    def test_totals_equal_column_sums(self, tipo):
        result = generar_libro(_mes_mixto(), tipo, MES)
        assert len(result.filas) == 6
        assert set(result.totales) == set(get_config_libro(tipo).total_keys)
        for key, total in result.totales.items():
            assert total == pytest.approx(sum(f[key] for f in result.filas), abs=0.005)

    def test_csv_round_trip_totals(self, tipo):
        result = generar_libro(_mes_mixto(), tipo, MES)
        filas, totales = parse_csv_libro(exportar_csv(result), tipo)
        assert len(filas) == len(result.filas)
        for key, total in totales.items():
            assert sum(f[key] for f in filas) == pytest.approx(total, abs=0.005)
        assert totales == pytest.approx(result.totales)
