"""
Barberman signals - public event API.

Emitted signals:
- client_created: Emitted by services.client.create()
- client_updated: Emitted by services.client.update()
- courtesy_earned: Emitted by FidelityService when a visit completes a card
- courtesy_consumed: Emitted by FidelityService.consume_courtesy()
- fidelity_recalculated: Emitted by FidelityService.recalculate()
"""

from django.dispatch import Signal

# Client signals (emitted by services)
client_created = Signal()  # sender=Client, client=Client
client_updated = Signal()  # sender=Client, client=Client, changes=dict

# Fidelity signals (emitted by FidelityService)
courtesy_earned = Signal()  # sender=Client, client=Client, count=int, reference=str
courtesy_consumed = Signal()  # sender=Client, client=Client, reference=str
fidelity_recalculated = Signal()  # sender=Client, client=Client, result=ReconciliationResult
