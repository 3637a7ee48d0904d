"""
Ledger modules -- business-facing layers built on ``ledger_kernel``.

    auto_posting   Journal entries generated from invoices, receipts and payments
    reporting      Libro diario, libro mayor, sumas y saldos, balance de
                   situación, cuenta de pérdidas y ganancias

Modules import from the kernel; the kernel never imports from modules.
"""
