"""
Módulo de Caixa Diário

- CashRegisterSession: uma sessão aberta por empresa e data
- CashWithdrawal: sangrias, vinculadas à sessão aberta do dia quando existe

O fechamento calcula o valor esperado (abertura + entradas - saídas do dia)
e a diferença para o valor contado. O relatório diário também desconta as
sangrias do saldo final.
"""
