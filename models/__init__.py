from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .login_attempt import LoginAttempt
from .ip_rate_limit import IpRateLimit
from .court import Court
from .event import Event, EventType, EventRegistration, HeldHour, event_courts
from .membership import Membership, MembershipType, MembershipEventDiscount
from .payment import Payment
