"""
Render a retrieval context as prompt text for the chat model.

Output is Portuguese, matching the intranet's users. Results are grouped
into employees, announcements and complementary web information, and the
closing instructions tell the model to prefer internal data.
"""

from __future__ import annotations

from intranet_rag.core.documents import DocumentType
from intranet_rag.retrieval.retriever import (
    RetrievalContext,
    RetrievedContent,
    truncate_content,
)

NO_CONTEXT_MESSAGE = "Nenhum contexto relevante encontrado na base de conhecimento interna."

WEB_SNIPPET_LENGTH = 200
ANNOUNCEMENT_SNIPPET_LENGTH = 150

# Placeholder e-mails used by the directory for people without an address
_PLACEHOLDER_EMAILS = frozenset({"", "xxx"})

_INSTRUCTIONS_WITH_WEB = (
    "INSTRUÇÕES: PRIORIZE SEMPRE os dados internos (funcionários e comunicados). "
    "Use informações da web apenas como complemento quando os dados internos não "
    "forem suficientes. INFORME ao usuário quando estiver usando informações externas."
)
_INSTRUCTIONS_INTERNAL = (
    "INSTRUÇÕES: Todas as informações são dos dados internos. Responda com base "
    "exclusivamente nessas informações internas (funcionários e comunicados)."
)


def _labelled_fields(content: str, labels: dict[str, str]) -> dict[str, str]:
    """Pick ``Label: value`` lines out of indexed text."""
    found: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        for label, key in labels.items():
            prefix = f"{label}:"
            if stripped.startswith(prefix) and key not in found:
                found[key] = stripped[len(prefix):].strip()
    return found


def summarize_employee(content: str) -> str:
    info = _labelled_fields(
        content,
        {
            "Funcionário": "name",
            "Departamento": "department",
            "Ramal": "extension",
            "Email": "email",
            "Horário de almoço": "lunch_time",
        },
    )
    summary = info.get("name") or "Nome não encontrado"
    if info.get("department"):
        summary += f" - {info['department']}"
    if info.get("extension"):
        summary += f" | Ramal: {info['extension']}"
    if info.get("email", "").lower() not in _PLACEHOLDER_EMAILS:
        summary += f" | Email: {info['email']}"
    if info.get("lunch_time"):
        summary += f" | Almoço: {info['lunch_time']}"
    return summary


def summarize_announcement(content: str) -> str:
    info = _labelled_fields(
        content,
        {
            "Comunicado": "title",
            "Prioridade": "priority",
            "Data": "date",
            "Conteúdo": "content",
        },
    )
    summary = info.get("title") or "Título não encontrado"
    if info.get("priority"):
        summary += f" [{info['priority'].upper()}]"
    if info.get("date"):
        summary += f" - {info['date']}"
    if info.get("content"):
        summary += f"\n   {truncate_content(info['content'], ANNOUNCEMENT_SNIPPET_LENGTH)}"
    return summary


def _relevance(item: RetrievedContent) -> str:
    return f"   Relevância: {item.similarity * 100:.1f}%"


def format_context_for_llm(context: RetrievalContext) -> str:
    """
    Format ``context`` as a prompt section.

    Returns a fixed notice when there is nothing to show.
    """
    if not context.relevant_content:
        return NO_CONTEXT_MESSAGE

    employees = [
        item for item in context.relevant_content
        if item.document_type is DocumentType.EMPLOYEE
    ]
    announcements = [
        item for item in context.relevant_content
        if item.document_type is DocumentType.ANNOUNCEMENT
    ]
    web = [
        item for item in context.relevant_content
        if item.document_type is DocumentType.WEB
    ]

    internal_count = len(employees) + len(announcements)
    if context.needs_web_search:
        origin = f"DADOS INTERNOS ({internal_count}) + WEB ({len(web)})"
    else:
        origin = f"DADOS INTERNOS ({context.total_sources} fontes)"

    lines = [f"=== {origin} ===", ""]
    if context.needs_web_search:
        lines += ["AVISO: Dados internos insuficientes. Incluindo informações da web.", ""]
    else:
        lines += ["INFORMAÇÕES ENCONTRADAS NOS DADOS INTERNOS", ""]

    if employees:
        lines.append("FUNCIONÁRIOS E CONTATOS:")
        for number, item in enumerate(employees, start=1):
            lines += [f"{number}. {summarize_employee(item.content)}", _relevance(item), ""]

    if announcements:
        lines.append("COMUNICADOS E AVISOS:")
        for number, item in enumerate(announcements, start=1):
            lines += [
                f"{number}. {summarize_announcement(item.content)}",
                _relevance(item),
                "",
            ]

    if web:
        lines.append("INFORMAÇÕES ADICIONAIS:")
        for number, item in enumerate(web, start=1):
            lines += [
                f"{number}. {item.title}",
                f"   {truncate_content(item.content, WEB_SNIPPET_LENGTH)}",
                f"   Fonte: {item.source}",
                _relevance(item),
                "",
            ]

    lines += [
        "",
        f"Busca realizada em {context.search_time_ms}ms",
        f'Query: "{context.query}"',
    ]
    if context.needs_web_search:
        lines += ["Origem: Dados internos + Web (dados internos insuficientes)", "", _INSTRUCTIONS_WITH_WEB]
    else:
        lines += ["Origem: Apenas dados internos", "", _INSTRUCTIONS_INTERNAL]

    return "\n".join(lines)
