"""GraphQL documents issued by the repository. All per-user queries take ``$userId: Int!``."""

USER_INFO = """
query GetUserInfo {
    user {
        id
        login
    }
}
"""

TOTAL_XP = """
query GetTotalXP($userId: Int!) {
    transaction(where: {userId: {_eq: $userId}, type: {_eq: "xp"}}) {
        amount
    }
}
"""

XP_OVER_TIME = """
query GetXPOverTime($userId: Int!) {
    transaction(
        where: {userId: {_eq: $userId}, type: {_eq: "xp"}},
        order_by: {createdAt: asc}
    ) {
        amount
        createdAt
        path
    }
}
"""

XP_BY_PROJECT = """
query GetXPByProject($userId: Int!) {
    transaction(where: {userId: {_eq: $userId}, type: {_eq: "xp"}}) {
        amount
        path
        objectId
    }
}
"""

AUDIT_RATIO = """
query GetAuditRatio($userId: Int!) {
    audit(where: {auditorId: {_eq: $userId}}) {
        grade
        auditorId
    }
}
"""

PASS_FAIL_RESULTS = """
query GetPassFailRatio($userId: Int!) {
    result(where: {userId: {_eq: $userId}}) {
        grade
        path
        objectId
        object {
            id
            type
        }
    }
}
"""

COMPLETED_PROJECTS = """
query GetCompletedProjects($userId: Int!, $minGrade: float8!) {
    progress(
        where: {userId: {_eq: $userId}, grade: {_gte: $minGrade}},
        order_by: {updatedAt: desc}
    ) {
        id
        grade
        path
        createdAt
        updatedAt
        objectId
        object {
            id
            name
            type
        }
    }
    result(
        where: {userId: {_eq: $userId}, grade: {_gte: $minGrade}},
        order_by: {updatedAt: desc}
    ) {
        id
        grade
        path
        createdAt
        updatedAt
        objectId
        object {
            id
            name
            type
        }
    }
}
"""

PROJECT_XP_FALLBACK = """
query GetProjectXP($userId: Int!) {
    transaction(where: {userId: {_eq: $userId}, type: {_eq: "xp"}}) {
        path
        objectId
        amount
        createdAt
        object {
            id
            name
            type
        }
    }
}
"""
