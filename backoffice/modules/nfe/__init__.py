"""
Módulo de NF-e (notas fiscais de entrada)

ENTIDADES PRINCIPAIS:
- NfeInvoice: cabeçalho da nota, totais, impostos e condições de pagamento
- NfeItem: itens da nota, sempre vinculados a um produto

CICLO DE VIDA:
- draft: registrada sem efeitos (processNow = false); pode ser editada
- processed: estoque incrementado, parcelas ou saída de caixa geradas
- cancelled: efeitos revertidos; estado final

INTEGRAÇÕES:
- Products: entrada de estoque por unidades inteiras, com movimento por item
- Accounts payable: uma conta por parcela quando o pagamento está pendente
- Cash flow: uma saída única quando a nota já foi paga

REGRAS DE NEGÓCIO:
- Número/série únicos por empresa
- Nota processada não pode ser editada; deve ser cancelada e lançada de novo
- Cancelamento exige estoque suficiente para todos os itens antes de debitar
- Parcelas pagas ou parcialmente pagas sobrevivem ao cancelamento
"""
