"""
DTE-SV — Normalizer and schema check tests
"""

import copy

from dtesv.mh.dte_builder import DTEBuilder
from dtesv.mh.normalize import normalize_dte, only_digits_or_none, trim_or_null
from dtesv.schemas.dte import validate_dte_schema
from dtesv.schemas.models import ItemFactura, Receptor


def _messy_dte() -> dict:
    return {
        "identificacion": {
            "version": 3, "ambiente": "02", "tipoDte": "03", "tipoOperacion": 1,
            "tipoContingencia": 3, "motivoContin": "sin red", "tipoMoneda": "usd",
        },
        "emisor": {
            "nit": "0614-121271-103-3", "nrc": "154980-9", "nombre": "  EMPRESA  ",
            "codActividad": "58-200", "nombreComercial": "   ", "telefono": " 2222-3333 ",
            "correo": " a@b.sv ",
            "direccion": {"departamento": " 06", "municipio": "14 ", "complemento": "  Centro "},
        },
        "receptor": {
            "tipoDocumento": "36", "numDocumento": "", "nrc": " ", "nombre": " CLIENTE ",
            "codActividad": "", "correo": "  ", "telefono": None,
            "direccion": {"departamento": " 06 ", "municipio": "", "complemento": "   "},
        },
        "cuerpoDocumento": [{"numItem": 1, "codigo": "  ", "descripcion": "  Servicio  "}],
        "resumen": {"totalLetras": "  CIEN DOLARES CON 00/100 USD "},
        "apendice": [],
    }


class TestHelpers:
    def test_only_digits_or_none(self):
        assert only_digits_or_none("0614-121271-103-3") == "06141212711033"
        assert only_digits_or_none("--") is None
        assert only_digits_or_none(None) is None

    def test_trim_or_null(self):
        assert trim_or_null("  x ") == "x"
        assert trim_or_null("   ") is None
        assert trim_or_null(None) is None


class TestNormalizeDTE:
    def setup_method(self):
        self.raw = _messy_dte()
        self.out = normalize_dte(self.raw)

    def test_identificacion(self):
        ident = self.out["identificacion"]
        assert ident["ambiente"] == "00"
        assert ident["tipoMoneda"] == "USD"
        assert ident["tipoContingencia"] is None
        assert ident["motivoContin"] is None

    def test_emisor(self):
        emisor = self.out["emisor"]
        assert emisor["nit"] == "06141212711033"
        assert emisor["nrc"] == "1549809"
        assert emisor["nombre"] == "EMPRESA"
        assert emisor["codActividad"] == "58200"
        assert emisor["nombreComercial"] is None
        assert emisor["telefono"] == "2222-3333"
        assert emisor["direccion"] == {"departamento": "06", "municipio": "14", "complemento": "Centro"}

    def test_receptor_empty_document_nulls_type(self):
        receptor = self.out["receptor"]
        assert receptor["numDocumento"] is None
        assert receptor["tipoDocumento"] is None
        assert receptor["nrc"] is None
        assert receptor["nombre"] == "CLIENTE"
        assert receptor["codActividad"] is None
        assert receptor["correo"] is None
        assert receptor["direccion"] == {"departamento": "06", "municipio": None, "complemento": None}

    def test_receptor_correo_trimmed(self):
        out = normalize_dte({"receptor": {"numDocumento": "06140101901015", "correo": "  cliente@demo.sv "}})
        assert out["receptor"]["correo"] == "cliente@demo.sv"

    def test_items_resumen_extension(self):
        item = self.out["cuerpoDocumento"][0]
        assert item["codigo"] is None
        assert item["descripcion"] == "Servicio"
        assert self.out["resumen"]["totalLetras"] == "CIEN DOLARES CON 00/100 USD"
        assert self.out["extension"] is None
        assert self.out["apendice"] is None

    def test_original_not_mutated(self):
        assert self.raw == _messy_dte()

    def test_idempotent(self):
        assert normalize_dte(self.out) == self.out


class TestNormalizeContingencia:
    def _ident(self, **ident) -> dict:
        return normalize_dte({"identificacion": ident})["identificacion"]

    def test_kept_when_contingency(self):
        ident = self._ident(tipoOperacion=2, tipoContingencia="5", motivoContin="  falla  ")
        assert ident["tipoContingencia"] == 5
        assert ident["motivoContin"] == "falla"

    def test_motivo_only_for_type_5(self):
        ident = self._ident(tipoOperacion=2, tipoContingencia=3, motivoContin="x")
        assert ident["tipoContingencia"] == 3
        assert ident["motivoContin"] is None

    def test_production_ambiente_kept(self):
        assert self._ident(ambiente="01")["ambiente"] == "01"

    def test_contingency_idempotent(self):
        once = normalize_dte({"identificacion": {"tipoOperacion": 2, "tipoContingencia": 5, "motivoContin": " m "}})
        assert normalize_dte(once) == once


class TestNormalizeBuiltDocument:
    def test_receptor_id_digits_only(self, emisor, clock):
        receptor = Receptor(nit="0614-010190-101-5", nrc="123456-7", nombre="CLIENTE")
        dte = DTEBuilder(emisor, clock=clock).build(receptor, [ItemFactura.desde_precio(1, "X", 1, 10.0)])
        out = normalize_dte(dte)
        assert out["receptor"]["numDocumento"] == "06140101901015"
        assert out["receptor"]["tipoDocumento"] == "36"
        assert out["receptor"]["nrc"] == "1234567"
        assert normalize_dte(out) == out


# ─────────────────────────────────────────────────────────────
# SCHEMA CHECK
# ─────────────────────────────────────────────────────────────

class TestValidateSchema:
    def _built(self, emisor, clock, **kwargs) -> dict:
        items = [ItemFactura.desde_precio(1, "Servicio", 1, 100.0)]
        receptor = Receptor(nit="0614-010190-101-5", nrc="123456-7", nombre="CLIENTE, S.A.",
                            departamento="06", municipio="14", direccion="Col. Centro")
        return normalize_dte(DTEBuilder(emisor, clock=clock).build(receptor, items, **kwargs))

    def test_factura_passes(self, emisor, clock):
        dte = normalize_dte(DTEBuilder(emisor, clock=clock).build(
            Receptor(), [ItemFactura.desde_precio(1, "Servicio", 1, 113.0)],
        ))
        assert validate_dte_schema(dte) == []

    def test_ccf_passes(self, emisor, clock):
        assert validate_dte_schema(self._built(emisor, clock, tipo_dte="03")) == []

    def test_bad_numero_control(self, emisor, clock):
        dte = self._built(emisor, clock)
        dte["identificacion"]["numeroControl"] = "X"
        errores = validate_dte_schema(dte)
        assert len(errores) == 1
        assert errores[0].codigo == "SCHEMA-0001"
        assert errores[0].campo == "identificacion.numeroControl"
        assert errores[0].severidad == "ERROR"

    def test_empty_body(self, emisor, clock):
        dte = self._built(emisor, clock)
        dte["cuerpoDocumento"] = []
        assert any(e.campo == "cuerpoDocumento" for e in validate_dte_schema(dte))

    def test_missing_emisor_nit(self, emisor, clock):
        dte = copy.deepcopy(self._built(emisor, clock))
        dte["emisor"]["nit"] = ""
        assert [e.campo for e in validate_dte_schema(dte)] == ["emisor.nit"]
