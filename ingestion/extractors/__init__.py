"""
Provider source clients.

Modules:
    csv_extractor: AEMO wholesale dispatch and RBA rates (CSV)
    api_extractor: AER retail plans and ABS housing (JSON)
    global_extractor: EIA, ENTSO-E, Eurostat and World Bank (JSON)
"""
