# hrms_payroll/wsgi.py
from hrms_payroll import create_app

app = create_app()
