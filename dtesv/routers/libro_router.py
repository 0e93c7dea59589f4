"""
DTE-SV: Router de Libros Legales
================================
Documentos JSON → libro mensual (compras, contribuyentes, consumidor final)
como JSON, CSV o XLSX.
"""
import io
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response, StreamingResponse

from dtesv.core.config import Settings
from dtesv.dependencies import get_settings
from dtesv.modules.processor import DocumentIngestError, group_by_month, parse_dte_document, process_json_content
from dtesv.schemas.models import LibroRequest, ModoLibro
from dtesv.services.libro_legal import LibroResult, exportar_csv, exportar_xlsx, generar_libro, get_config_libro

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/libros", tags=["Libros"])

MODO_POR_LIBRO = {
    "compras": ModoLibro.COMPRAS,
    "contribuyentes": ModoLibro.VENTAS,
    "consumidor": ModoLibro.VENTAS,
}


def _libro(tipo_libro: str, body: LibroRequest, cfg: Settings) -> LibroResult:
    if get_config_libro(tipo_libro) is None:
        raise HTTPException(404, f"Configuración no encontrada para tipoLibro: {tipo_libro}")

    # Modo explícito gana sobre la detección por NIT/NRC propio
    mi_nit = None if body.modo else (body.mi_nit or cfg.mi_nit)
    mi_nrc = None if body.modo else (body.mi_nrc or cfg.mi_nrc)

    procesados = []
    for i, contenido in enumerate(body.documentos, 1):
        try:
            parse_dte_document(contenido)
        except DocumentIngestError as e:
            raise HTTPException(400, f"Documento {i}: {e.message}")
        procesados.append(process_json_content(
            f"documento-{i}.json", contenido, mode=body.modo, mi_nit=mi_nit, mi_nrc=mi_nrc,
        ))

    modo = MODO_POR_LIBRO[tipo_libro]
    grouped = group_by_month([d for d in procesados if d.mode == modo])
    return generar_libro(grouped, tipo_libro, body.mes)


@router.post("/{tipo_libro}")
async def libro(tipo_libro: str, body: LibroRequest, cfg: Settings = Depends(get_settings)):
    return _libro(tipo_libro, body, cfg).model_dump()


@router.post("/{tipo_libro}/csv")
async def libro_csv(tipo_libro: str, body: LibroRequest, cfg: Settings = Depends(get_settings)):
    result = _libro(tipo_libro, body, cfg)
    filename = f"libro_{tipo_libro}_{body.mes}.csv"
    return Response(
        content=exportar_csv(result),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{tipo_libro}/xlsx")
async def libro_xlsx(tipo_libro: str, body: LibroRequest, cfg: Settings = Depends(get_settings)):
    result = _libro(tipo_libro, body, cfg)
    filename = f"libro_{tipo_libro}_{body.mes}.xlsx"
    return StreamingResponse(
        io.BytesIO(exportar_xlsx(result)),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
