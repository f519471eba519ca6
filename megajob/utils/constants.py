"""Common constants."""

# Roles a visitor may pick when signing up
SELF_SERVICE_ROLES = ["job_seeker", "employer", "hr"]

# Profile fields a user may not change through the profile endpoint
PROTECTED_USER_FIELDS = {
    "_id",
    "id",
    "email",
    "password",
    "password_hash",
    "role",
    "is_active",
    "is_verified",
    "created_at",
    "last_login",
}

# Fields the server assigns on job and company records
SERVER_OWNED_FIELDS = {"_id", "id", "posted_by", "employer_id", "created_at", "updated_at"}

# Demo accounts shared by the offline auth simulation and the seed script
DEMO_ACCOUNTS = {
    "job_seeker": {
        "email": "jobseeker.demo@megajobnepal.com",
        "password": "jobseeker123",
        "user": {
            "id": "demo-jobseeker-12345",
            "email": "jobseeker.demo@megajobnepal.com",
            "role": "job_seeker",
            "first_name": "John",
            "last_name": "Doe",
            "phone": "+977-9812345678",
            "is_verified": True,
            "is_active": True,
            "created_at": "2024-01-15T08:30:00+00:00",
        },
    },
    "employer": {
        "email": "employer.demo@megajobnepal.com",
        "password": "employer123",
        "user": {
            "id": "demo-employer-12345",
            "email": "employer.demo@megajobnepal.com",
            "role": "employer",
            "first_name": "Sarah",
            "last_name": "Johnson",
            "phone": "+977-9823456789",
            "is_verified": True,
            "is_active": True,
            "created_at": "2024-01-10T10:00:00+00:00",
        },
    },
    "admin": {
        "email": "admin.demo@megajobnepal.com",
        "password": "admin123",
        "user": {
            "id": "demo-admin-12345",
            "email": "admin.demo@megajobnepal.com",
            "role": "admin",
            "first_name": "Admin",
            "last_name": "User",
            "is_verified": True,
            "is_active": True,
            "created_at": "2024-01-01T00:00:00+00:00",
        },
    },
}

# Static OTP handed out by the offline signup simulation
DEMO_OTP = "123456"

DEMO_TOKEN_PREFIX = "demo-token-"
