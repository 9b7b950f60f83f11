# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do stepflow.

Este módulo contém testes mínimos cujo único objetivo é garantir que:
- o pacote pode ser importado sem falhas estruturais
- a API pública de topo está exposta
- o ambiente de testes (pytest) está funcional

Invariantes:
    - Estes testes devem sempre passar em um setup correto
    - Não dependem de filesystem nem executam runs

Limites explícitos:
    - Não testar lógica de negócio
    - Não testar fluxo de execução
"""


def test_smoke():
    """
    Smoke test mínimo do repositório: o pacote importa e expõe a API de topo.

    Não valida comportamento de domínio; serve como sentinela de integridade
    durante CI e refactors.
    """
    import stepflow

    for name in ("Engine", "RunResult", "Dataflow", "StepDraft", "StepRecord", "InMemoryRecordStore", "StepRepository"):
        assert hasattr(stepflow, name), name
