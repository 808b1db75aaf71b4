# Models package
from estimator.models.user import User, UserRole
from estimator.models.credential import Credential
from estimator.models.login_session import LoginSession
from estimator.models.material import Material
from estimator.models.customer import Customer
from estimator.models.project import Project
from estimator.models.quotation import Quotation, QuotationItem
