class ContentUnavailable(Exception):
    """Ni el proveedor ni el banco local entregaron contenido. Es recuperable con retry()."""


class InvalidSubmission(Exception):
    """Respuesta fuera de la fase Active (o que no corresponde al ítem). Se ignora."""
