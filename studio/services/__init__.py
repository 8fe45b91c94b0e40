"""Domain services: auth, booking intake, payments, lifecycle, projects, dashboards"""
