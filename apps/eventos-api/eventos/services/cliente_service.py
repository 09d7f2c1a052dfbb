"""
Client resolution for reservations.

A reservation names its client by free text. Before saving, the name/email
pair is matched against existing clients so repeated bookings reuse one row.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

ClienteLookup = Callable[[Optional[str], str], Optional[Dict[str, Any]]]


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


@dataclass
class ResolucionCliente:
    cliente_id: Optional[int] = None
    cambios: Dict[str, Any] = field(default_factory=dict)
    nuevo: Optional[Dict[str, Any]] = None

    @property
    def es_nuevo(self) -> bool:
        return self.cliente_id is None


def resolver_cliente(
    buscar: ClienteLookup,
    nombre: str,
    email: Optional[str] = None,
    telefono: Optional[str] = None,
    empresa: Optional[str] = None,
) -> ResolucionCliente:
    """Match a client by email OR exact name.

    On a match, only newly supplied contact fields that differ from the
    stored ones are returned as `cambios`; on no match, `nuevo` carries the
    row to insert.
    """
    nombre = _clean(nombre) or ""
    email = _clean(email)
    telefono = _clean(telefono)
    empresa = _clean(empresa)

    existente = buscar(email, nombre)
    if not existente:
        return ResolucionCliente(
            nuevo={
                "nombre": nombre,
                "email": email,
                "telefono": telefono,
                "empresa": empresa,
            }
        )

    cambios: Dict[str, Any] = {}
    if email and email != existente.get("email"):
        cambios["email"] = email
    if telefono and telefono != existente.get("telefono"):
        cambios["telefono"] = telefono
    if empresa and empresa != existente.get("empresa"):
        cambios["empresa"] = empresa
    return ResolucionCliente(cliente_id=int(existente["id"]), cambios=cambios)


def cambios_cliente_vinculado(
    actual: Dict[str, Any],
    nombre: str,
    email: Optional[str] = None,
    telefono: Optional[str] = None,
    empresa: Optional[str] = None,
) -> Dict[str, Any]:
    """Field patch for the client already linked to a reservation being edited.

    Editing overwrites name, email and phone with the submitted values (an
    empty email or phone clears it). Company is only replaced when given.
    """
    deseado = {
        "nombre": _clean(nombre) or actual.get("nombre"),
        "email": _clean(email),
        "telefono": _clean(telefono),
    }
    if _clean(empresa):
        deseado["empresa"] = _clean(empresa)
    return {k: v for k, v in deseado.items() if actual.get(k) != v}
