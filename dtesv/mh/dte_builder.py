"""
DTE-SV: Constructor de DTEs
===========================
Arma el documento completo (identificacion, emisor, receptor,
cuerpoDocumento, resumen, extension) a partir del perfil del emisor, el
receptor y los ítems. Función pura: reloj e identificadores vienen del
ClockAndIdSource inyectado.

REGLAS:
- 01 (IVA incluido): ivaItem = ventaGravada - ventaGravada/1.13, tributos null
  en ítems y resumen, resumen lleva totalIva.
- 03 y demás (IVA excluido): ivaItem = ventaGravada * 0.13, ítems gravados con
  tributos ["20"], resumen con un tributo IVA y ivaPerci1.
- Receptor: 9 dígitos -> DUI (13), otro largo -> NIT (36), vacío -> null.
- Dirección del receptor solo si departamento Y municipio son válidos.
- pagos solo en operaciones al contado (condicionOperacion = 1).
"""
import logging

from dtesv.core.catalogos import (
    CONDICION_CONTADO, DEFAULT_CATALOGO, TIPO_ID_DUI, TIPO_ID_NIT, TRIBUTO_IVA, Catalogo,
)
from dtesv.mh.totals import calcular_totales, iva_item
from dtesv.schemas.models import EmisorProfile, ItemFactura, Receptor, Totales
from dtesv.utils.dte_helpers import (
    DEFAULT_COD_ESTABLE, DEFAULT_COD_PUNTO_VENTA, ClockAndIdSource, SystemClock,
    generate_numero_control,
)
from dtesv.utils.numeric import monto_letras, redondear
from dtesv.utils.validators import (
    is_cod_actividad, is_cod_departamento, is_cod_municipio, normalizar_cod_actividad_emisor,
)

logger = logging.getLogger(__name__)

CONSUMIDOR_FINAL = "Consumidor Final"
TIPO_OPERACION_CONTINGENCIA = 2


def _texto(value: str | None) -> str:
    return (value or "").strip()


class DTEBuilder:
    def __init__(
        self,
        emisor: EmisorProfile,
        catalogo: Catalogo = DEFAULT_CATALOGO,
        clock: ClockAndIdSource | None = None,
        default_cod_estable: str = DEFAULT_COD_ESTABLE,
        default_cod_punto_venta: str = DEFAULT_COD_PUNTO_VENTA,
    ):
        self.emisor = emisor
        self.catalogo = catalogo
        self.clock = clock or SystemClock()
        self.default_cod_estable = default_cod_estable
        self.default_cod_punto_venta = default_cod_punto_venta

    def build(
        self,
        receptor: Receptor,
        items: list[ItemFactura],
        *,
        tipo_dte: str = "01",
        forma_pago: str = "01",
        condicion_operacion: int = CONDICION_CONTADO,
        observaciones: str | None = None,
        correlativo: int = 1,
        ambiente: str = "00",
        tipo_transmision: int = 1,
        tipo_contingencia: int | None = None,
        motivo_contingencia: str | None = None,
    ) -> dict:
        if not self.catalogo.es_tipo_valido(tipo_dte):
            raise ValueError(f"Tipo DTE no soportado: {tipo_dte}")

        totales = calcular_totales(items, tipo_dte, self.catalogo)
        codigo_gen = self.clock.new_id()
        fec_emi, hor_emi = self.clock.fecha_hora()
        numero_control = generate_numero_control(
            tipo_dte, correlativo,
            self.emisor.cod_estable_mh, self.emisor.cod_punto_venta_mh,
            self.default_cod_estable, self.default_cod_punto_venta,
        )
        contingencia = tipo_transmision == TIPO_OPERACION_CONTINGENCIA

        dte = {
            "identificacion": {
                "version": self.catalogo.version(tipo_dte),
                "ambiente": ambiente,
                "tipoDte": tipo_dte,
                "numeroControl": numero_control,
                "codigoGeneracion": codigo_gen,
                "tipoModelo": 1,
                "tipoOperacion": tipo_transmision,
                "tipoContingencia": tipo_contingencia if contingencia else None,
                "motivoContin": motivo_contingencia if contingencia else None,
                "fecEmi": fec_emi,
                "horEmi": hor_emi,
                "tipoMoneda": "USD",
            },
            "documentoRelacionado": None,
            "emisor": self._emisor(),
            "receptor": self._receptor(receptor),
            "otrosDocumentos": None,
            "ventaTercero": None,
            "cuerpoDocumento": self._cuerpo(items, tipo_dte),
            "resumen": self._resumen(totales, tipo_dte, forma_pago, condicion_operacion),
            "extension": self._extension(observaciones),
            "apendice": None,
        }
        logger.info(f"DTE {tipo_dte} generado: {numero_control} ({codigo_gen[:8]}...)")
        return dte

    # ── Emisor ──

    def _emisor(self) -> dict:
        e = self.emisor
        return {
            "nit": e.nit, "nrc": e.nrc, "nombre": e.nombre,
            "codActividad": normalizar_cod_actividad_emisor(e.cod_actividad),
            "descActividad": e.desc_actividad or "",
            "nombreComercial": e.nombre_comercial or None,
            "tipoEstablecimiento": e.tipo_establecimiento or "01",
            "codEstable": e.cod_estable_mh or None,
            "codPuntoVenta": e.cod_punto_venta_mh or None,
            "direccion": {"departamento": e.departamento,
                          "municipio": e.municipio,
                          "complemento": e.direccion},
            "telefono": e.telefono, "correo": e.correo,
            "codEstableMH": e.cod_estable_mh or None,
            "codPuntoVentaMH": e.cod_punto_venta_mh or None,
        }

    # ── Receptor ──

    def _receptor(self, r: Receptor) -> dict:
        id_digits = _texto(r.nit).replace("-", "").replace(" ", "")
        if not id_digits:
            tipo_doc, num_doc = None, None
        else:
            tipo_doc = TIPO_ID_DUI if len(id_digits) == 9 else TIPO_ID_NIT
            num_doc = _texto(r.nit)

        actividad = _texto(r.actividad_economica)
        cod_actividad = actividad if is_cod_actividad(actividad) else None
        if _texto(r.desc_actividad):
            desc_actividad = _texto(r.desc_actividad)
        elif actividad and cod_actividad is None:
            desc_actividad = actividad
        else:
            desc_actividad = None

        direccion = None
        if is_cod_departamento(r.departamento) and is_cod_municipio(r.municipio):
            direccion = {
                "departamento": r.departamento.strip(),
                "municipio": r.municipio.strip(),
                "complemento": r.direccion or "",
            }

        return {
            "tipoDocumento": tipo_doc,
            "numDocumento": num_doc,
            "nrc": r.nrc or None,
            "nombre": r.nombre if _texto(r.nombre) else CONSUMIDOR_FINAL,
            "codActividad": cod_actividad,
            "descActividad": desc_actividad,
            "direccion": direccion,
            "telefono": r.telefono or None,
            "correo": r.email or None,
        }

    # ── Cuerpo ──

    def _cuerpo(self, items: list[ItemFactura], tipo_dte: str) -> list[dict]:
        incluido = self.catalogo.iva_incluido(tipo_dte)
        cuerpo = []
        for i, item in enumerate(items, 1):
            vg = redondear(item.venta_gravada, 8)
            if incluido:
                tributos = None
            else:
                tributos = [TRIBUTO_IVA] if vg > 0 else None
            cuerpo.append({
                "numItem": i, "tipoItem": item.tipo_item,
                "numeroDocumento": None, "cantidad": redondear(item.cantidad, 8),
                "codigo": item.codigo, "codTributo": None,
                "uniMedida": item.uni_medida, "descripcion": item.descripcion,
                "precioUni": redondear(item.precio_uni, 8),
                "montoDescu": redondear(item.monto_descu, 2),
                "ventaNoSuj": redondear(item.venta_no_suj, 8),
                "ventaExenta": redondear(item.venta_exenta, 8),
                "ventaGravada": vg,
                "tributos": tributos, "psv": 0.0, "noGravado": 0.0,
                "ivaItem": iva_item(vg, tipo_dte, self.catalogo),
            })
        return cuerpo

    # ── Resumen ──

    def _resumen(self, t: Totales, tipo_dte: str, forma_pago: str,
                 condicion_operacion: int) -> dict:
        incluido = self.catalogo.iva_incluido(tipo_dte)
        if incluido:
            tributos = None
        else:
            tributo = self.catalogo.tributo(TRIBUTO_IVA)
            tributos = [{
                "codigo": TRIBUTO_IVA,
                "descripcion": tributo.descripcion if tributo else "Impuesto al Valor Agregado 13%",
                "valor": t.iva,
            }]

        resumen = {
            "totalNoSuj": t.total_no_suj, "totalExenta": t.total_exenta,
            "totalGravada": t.total_gravada, "subTotalVentas": t.sub_total_ventas,
            "descuNoSuj": 0.0, "descuExenta": 0.0, "descuGravada": t.total_descu,
            "porcentajeDescuento": 0.0, "totalDescu": t.total_descu,
            "tributos": tributos, "subTotal": t.sub_total_ventas,
            "ivaRete1": 0.0, "reteRenta": 0.0,
            "montoTotalOperacion": t.monto_total_operacion,
            "totalNoGravado": 0.0, "totalPagar": t.total_pagar,
            "totalLetras": monto_letras(t.total_pagar),
            "saldoFavor": 0.0, "condicionOperacion": condicion_operacion,
            "pagos": None, "numPagoElectronico": None,
        }
        if incluido:
            resumen["totalIva"] = t.iva
        else:
            resumen["ivaPerci1"] = 0.0
        if condicion_operacion == CONDICION_CONTADO:
            resumen["pagos"] = [{
                "codigo": forma_pago, "montoPago": t.total_pagar,
                "referencia": None, "plazo": None, "periodo": None,
            }]
        return resumen

    # ── Extensión ──

    @staticmethod
    def _extension(observaciones: str | None) -> dict:
        return {
            "nombEntrega": None, "docuEntrega": None,
            "nombRecibe": None, "docuRecibe": None,
            "observaciones": _texto(observaciones) or None,
            "placaVehiculo": None,
        }
