"""Unity ERP - component requirements, shortfall and stock issuance engine"""
