from datetime import datetime
from hrms_payroll.extensions import db

class Employee(db.Model):
    """Directory record. Owned by the employee-profile service; payroll only reads it."""
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)

    code  = db.Column(db.String(32), unique=True, nullable=False)    # EMP-001
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)

    department = db.Column(db.String(120), nullable=True)
    position_name = db.Column(db.String(120), nullable=True)   # matches signing_bonuses.position_name
    pay_grade = db.Column(db.String(80), nullable=True)        # matches pay_grades.grade

    doj = db.Column(db.Date, nullable=True)   # date of joining
    dol = db.Column(db.Date, nullable=True)   # date of leaving (null if active)
    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    bank_accounts = db.relationship("EmployeeBankAccount", lazy="selectin", back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
