"""Canned in-memory connection used by profiles flagged as simulated."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"FROM\s+([^\s,;()]+)", re.IGNORECASE)


def _table_name(sql: str) -> str:
    match = _TABLE_RE.search(sql)
    if not match:
        return "desconhecida"
    return re.sub(r"[\[\]\"`']", "", match.group(1))


def _sample_rows(table: str) -> list[dict[str, Any]]:
    now = datetime.now().isoformat()
    table = table.lower()
    if "cliente" in table:
        return [
            {"id": i, "nome": f"Cliente Simulado {i}", "email": f"cliente{i}@exemplo.com",
             "telefone": f"(11) 99999-{i}{i}{i}{i}", "data_cadastro": now}
            for i in (1, 2, 3)
        ]
    if "produto" in table:
        return [
            {"id": 1, "nome": "Produto Simulado 1", "preco": 99.90, "estoque": 100, "categoria": "Categoria A"},
            {"id": 2, "nome": "Produto Simulado 2", "preco": 199.90, "estoque": 50, "categoria": "Categoria B"},
            {"id": 3, "nome": "Produto Simulado 3", "preco": 299.90, "estoque": 25, "categoria": "Categoria C"},
        ]
    if "venda" in table or "pedido" in table:
        return [
            {"id": 1, "cliente_id": 1, "data": now, "valor_total": 299.70, "status": "Concluído"},
            {"id": 2, "cliente_id": 2, "data": now, "valor_total": 399.80, "status": "Em processamento"},
            {"id": 3, "cliente_id": 1, "data": now, "valor_total": 599.70, "status": "Aguardando pagamento"},
        ]
    return [
        {"id": i, "descricao": f"Registro simulado {i}", "valor": i * 100, "data": now}
        for i in (1, 2, 3)
    ]


class SimulatedConnection:
    """Stand-in for a driver connection that never leaves the process."""

    simulated = True

    def __init__(self, profile_name: Optional[str] = None) -> None:
        self.profile_name = profile_name or "Sem nome"
        self.closed = False
        logger.info(f"Opening simulated connection for profile {self.profile_name!r}")

    def query(self, sql: str) -> list[dict[str, Any]]:
        if "SELECT 1" in sql.upper():
            return [{"test": 1}]
        table = _table_name(sql)
        rows = _sample_rows(table)
        logger.info(f"Simulated query on table {table!r} returned {len(rows)} rows")
        return rows

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "SimulatedConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = ["SimulatedConnection"]
