from housekeeping.models.company import Company, CompanyPlan, SYSTEM_COMPANY_ID, SYSTEM_COMPANY_NAME
from housekeeping.models.building import Building, BuildingType
from housekeeping.models.room import Room
from housekeeping.models.user import Account, UserRole
from housekeeping.models.task import CleaningTask, TaskStatus
from housekeeping.models.identity import Identity
