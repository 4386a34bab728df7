"""Domain error codes.

Each error class is raised by name, e.g. ``AuthError('USER_NOT_FOUND')``,
optionally with a more specific message and a details mapping.
"""
from apps.dpis.utils.security import CodedError


class AuthError(CodedError):
    CODES = {
        'USER_NOT_FOUND': ('AUTH_001', 'User not found', 404),
        'USER_ALREADY_EXISTS': ('AUTH_002', 'User already exists', 409),
        'USER_ALREADY_DELETED': ('AUTH_003', 'User is already deleted', 409),
        'USER_ALREADY_APPROVED': ('AUTH_004', 'User is already approved', 409),
        'INVALID_USER_STATE': ('AUTH_005', 'Invalid user state', 400),
        'PERMISSION_NOT_FOUND': ('AUTH_006', 'Permission not found', 404),
        'MISSING_PERMISSIONS': ('AUTH_007', 'Required permissions are missing', 403),
        'UNAUTHENTICATED': ('AUTH_008', 'Authentication required', 401),
        'INSUFFICIENT_PERMISSIONS': ('AUTH_009', 'Insufficient permissions', 403),
        'INVALID_CREDENTIALS': ('AUTH_010', 'Invalid email or password', 401),
        'USER_NOT_APPROVED': ('AUTH_011', 'User account is not approved', 403),
        'INVALID_TOKEN': ('AUTH_012', 'Invalid or expired token', 401),
        'INVALID_PASSWORD': ('AUTH_013', 'Invalid password', 400),
        'JWT_VALIDATION_FAILED': ('AUTH_014', 'JWT token validation failed', 401),
        'PASSWORD_RESET_OTP_INVALID': ('AUTH_015', 'Invalid or expired OTP', 400),
        'PASSWORDS_DO_NOT_MATCH': ('AUTH_016', 'Passwords do not match', 400),
        'TOO_MANY_ATTEMPTS': ('AUTH_017', 'Too many invalid attempts', 400),
        'PAGE_DOES_NOT_EXIST': ('AUTH_018', 'Requested page does not exist', 400),
    }


class CitizenAuthError(CodedError):
    CODES = {
        'CITIZEN_NOT_FOUND': ('CITIZEN_AUTH_001', 'Citizen not found', 404),
        'CITIZEN_ALREADY_EXISTS': ('CITIZEN_AUTH_002', 'Citizen already exists', 409),
        'CITIZEN_NOT_APPROVED': ('CITIZEN_AUTH_003', 'Citizen profile not approved', 403),
        'CITIZEN_ACCOUNT_REJECTED': ('CITIZEN_AUTH_004', 'Citizen account rejected', 403),
        'CITIZEN_ACCOUNT_DISABLED': ('CITIZEN_AUTH_005', 'Citizen account disabled', 403),
        'INVALID_CREDENTIALS': ('CITIZEN_AUTH_006', 'Invalid credentials', 401),
        'INVALID_TOKEN': ('CITIZEN_AUTH_007', 'Invalid or expired token', 401),
        'UNAUTHENTICATED': ('CITIZEN_AUTH_008', 'Authentication required', 401),
        'JWT_VALIDATION_FAILED': ('CITIZEN_AUTH_009', 'JWT token validation failed', 401),
        'INVALID_PASSWORD': ('CITIZEN_AUTH_010', 'Invalid password provided', 400),
        'PASSWORD_RESET_OTP_INVALID': ('CITIZEN_AUTH_011', 'Invalid or expired OTP', 400),
        'PASSWORDS_DO_NOT_MATCH': ('CITIZEN_AUTH_012', 'Passwords do not match', 400),
        'TOO_MANY_ATTEMPTS': ('CITIZEN_AUTH_013', 'Too many invalid attempts', 400),
    }


class CitizenError(CodedError):
    CODES = {
        'CITIZEN_NOT_FOUND': ('CIT_001', 'Citizen not found', 404),
        'DUPLICATE_CITIZENSHIP_NUMBER': ('CIT_002', 'Citizenship number already exists', 409),
        'DUPLICATE_EMAIL': ('CIT_003', 'Email already registered to another citizen', 409),
        'INVALID_CITIZENSHIP_DATA': ('CIT_004', 'Invalid citizenship certificate data', 400),
        'CITIZEN_ALREADY_APPROVED': ('CIT_005', 'Citizen record already approved', 409),
        'CITIZEN_ALREADY_DELETED': ('CIT_006', 'Citizen record already deleted', 409),
        'INVALID_ADDRESS_DATA': ('CIT_007', 'Invalid address data', 400),
        'MISSING_REQUIRED_DATA': ('CIT_008', 'Missing required citizen data', 400),
        'INVALID_DOCUMENT_FORMAT': ('CIT_012', 'Invalid document format', 400),
        'DOCUMENT_TOO_LARGE': ('CIT_013', 'Document size exceeds the allowable limit', 400),
        'DOCUMENT_UPLOAD_FAILED': ('CIT_014', 'Document upload failed due to server error', 500),
        'INVALID_STATE_TRANSITION': ('CIT_015', 'Invalid citizen state transition', 400),
    }


class LocationError(CodedError):
    CODES = {
        'PROVINCE_NOT_FOUND': ('LOC_001', 'Province not found', 404),
        'DISTRICT_NOT_FOUND': ('LOC_011', 'District not found', 404),
        'MUNICIPALITY_NOT_FOUND': ('LOC_021', 'Municipality not found', 404),
        'WARD_NOT_FOUND': ('LOC_031', 'Ward not found', 404),
        'DUPLICATE_WARD_NUMBER': ('LOC_032', 'Duplicate ward number', 409),
        'INVALID_LOCATION_DATA': ('LOC_041', 'Invalid location data', 400),
        'INVALID_WARD_COUNT': ('LOC_045', 'Invalid ward count', 400),
    }


class AddressError(CodedError):
    CODES = {
        'PROVINCE_NOT_FOUND': ('ADDR_001', 'Province not found', 400),
        'DISTRICT_NOT_FOUND': ('ADDR_002', 'District not found', 400),
        'MUNICIPALITY_NOT_FOUND': ('ADDR_003', 'Municipality not found', 400),
        'WARD_NOT_FOUND': ('ADDR_004', 'Ward not found', 400),
        'DISTRICT_NOT_IN_PROVINCE': ('ADDR_005', 'District does not belong to the specified province', 400),
        'MUNICIPALITY_NOT_IN_DISTRICT': ('ADDR_006', 'Municipality does not belong to the specified district', 400),
        'WARD_NOT_IN_MUNICIPALITY': ('ADDR_007', 'Ward does not belong to the specified municipality', 400),
        'INCOMPLETE_ADDRESS': ('ADDR_009', 'Address information is incomplete', 400),
    }
