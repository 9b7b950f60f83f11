# src/stepflow/core/__init__.py
"""
Core do stepflow.

Este pacote reúne a implementação canônica do engine: modelo de Steps,
persistência por contrato, construção do grafo de dependências, protocolo
de iteradores e orquestração da execução.

O core é projetado para ser:
    - determinístico para a mesma definição de dataflow
    - testável de forma isolada (store e avaliador em memória)
    - livre de dependências de UI, HTTP ou orquestradores externos

Componentes principais:
    - model        → StepRecord, StepDraft, Dataflow, referências ById/ByAlias
    - persistence  → RecordStore (contrato) e StepRepository
    - engine       → planner (DAG), iteradores, FlowStep e Engine
    - pipeline     → tipos, RunContext e registry de tipos de Step
    - config       → settings do engine
    - traceability → Manifest da run

Limites explícitos:
    - Não executa em múltiplos nós
    - Não faz checkpoint de runs parcialmente executadas
    - Não implementa uma linguagem de expressões de propósito geral
"""
