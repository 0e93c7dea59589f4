"""
DTE-SV — Calculador de totales
Agrega los ítems de un DTE en totales por bucket y calcula el IVA según la
política del tipo de documento:

  - IVA incluido (01 Factura): el precio gravado ya trae el 13%.
        IVA = Σ redondear(g − g/1.13) por ítem
        totalPagar = subTotalVentas − totalDescu
  - IVA excluido (03 CCF y demás):
        IVA = redondear(totalGravada × 0.13) sobre el agregado
        totalPagar = subTotalVentas + IVA − totalDescu

Ambas políticas se mantienen separadas: el redondeo por ítem vs. agregado
produce centavos distintos en documentos de muchos ítems.
"""

from dtesv.core.catalogos import DEFAULT_CATALOGO, FACTOR_IVA, TASA_IVA, Catalogo
from dtesv.schemas.models import ItemFactura, Totales
from dtesv.utils.numeric import redondear


def iva_item(venta_gravada: float, tipo_dte: str, catalogo: Catalogo = DEFAULT_CATALOGO) -> float:
    """IVA de un ítem individual según la política del tipo de documento."""
    if venta_gravada <= 0:
        return 0.0
    if catalogo.iva_incluido(tipo_dte):
        return redondear(venta_gravada - venta_gravada / FACTOR_IVA, 2)
    return redondear(venta_gravada * TASA_IVA, 2)


def calcular_totales(
    items: list[ItemFactura],
    tipo_dte: str,
    catalogo: Catalogo = DEFAULT_CATALOGO,
) -> Totales:
    total_no_suj = sum(i.venta_no_suj for i in items)
    total_exenta = sum(i.venta_exenta for i in items)
    total_gravada = sum(i.venta_gravada for i in items)
    total_descu = sum(i.monto_descu for i in items)

    total_no_suj = redondear(total_no_suj, 2)
    total_exenta = redondear(total_exenta, 2)
    total_gravada = redondear(total_gravada, 2)
    total_descu = redondear(total_descu, 2)
    sub_total_ventas = redondear(total_no_suj + total_exenta + total_gravada, 2)

    if catalogo.iva_incluido(tipo_dte):
        iva = redondear(sum(iva_item(i.venta_gravada, tipo_dte, catalogo) for i in items), 2)
        total_pagar = redondear(sub_total_ventas - total_descu, 2)
    else:
        iva = redondear(total_gravada * TASA_IVA, 2) if total_gravada > 0 else 0.0
        total_pagar = redondear(sub_total_ventas + iva - total_descu, 2)

    return Totales(
        total_no_suj=total_no_suj,
        total_exenta=total_exenta,
        total_gravada=total_gravada,
        sub_total_ventas=sub_total_ventas,
        total_descu=total_descu,
        iva=iva,
        total_pagar=total_pagar,
    )
