"""
Turn directory records into indexable text.

Each record becomes a small labelled card. Besides the primary labels, a
few alternative labels repeat key fields (``Setor``, ``Extensão``,
``Aviso``...) so that queries phrased with synonyms still hit the card.
"""

from __future__ import annotations

from intranet_rag.core.documents import AnnouncementRecord, EmployeeRecord


def format_employee_for_indexing(employee: EmployeeRecord) -> str:
    """
    Example:
        >>> print(format_employee_for_indexing(EmployeeRecord(
        ...     id="1", name="Ana", department="RH", extension="2010", email="ana@x")))
        Funcionário: Ana
        Departamento: RH
        Ramal: 2010
        Email: ana@x
        Setor: RH
        Extensão: 2010
        Contato: Ana - 2010
    """
    parts = [
        f"Funcionário: {employee.name}",
        f"Departamento: {employee.department}",
        f"Ramal: {employee.extension}",
        f"Email: {employee.email}",
    ]
    if employee.lunch_time:
        parts.append(f"Horário de almoço: {employee.lunch_time}")

    parts.append(f"Setor: {employee.department}")
    parts.append(f"Extensão: {employee.extension}")
    parts.append(f"Contato: {employee.name} - {employee.extension}")
    return "\n".join(parts)


def format_announcement_for_indexing(announcement: AnnouncementRecord) -> str:
    parts = [
        f"Comunicado: {announcement.title}",
        f"Prioridade: {announcement.priority}",
        f"Data: {announcement.date}",
        f"Conteúdo: {announcement.content}",
        f"Aviso: {announcement.title}",
        f"Informação: {announcement.content}",
    ]
    return "\n".join(parts)
