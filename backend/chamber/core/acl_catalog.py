"""
접근 제어 카탈로그: 회원 등급(Tier), 역할(Role), 권한(Permission),
역할별 권한 패턴.

패턴은 '*' (전체), 'resource.*' (리소스 전체 액션), 정확한 키를 지원합니다.
"""

TIERS = [
    {
        "code": "MEMBER",
        "name": "일반 회원",
        "name_en": "Regular Member",
        "name_zh": "普通会员",
        "annual_fee": 0,
        "benefits": ["이벤트 참가", "자료실 열람", "뉴스 구독"],
        "order": 1,
    },
    {
        "code": "PRO",
        "name": "전문 회원",
        "name_en": "Professional Member",
        "name_zh": "专业会员",
        "annual_fee": 100000,
        "benefits": ["프리미엄 콘텐츠 접근", "비즈니스 매칭", "우선 이벤트 신청"],
        "order": 2,
    },
    {
        "code": "CORP",
        "name": "기업 회원",
        "name_en": "Corporate Member",
        "name_zh": "企业会员",
        "annual_fee": 500000,
        "benefits": ["전용 상담", "기업 홍보", "스폰서십 기회"],
        "order": 3,
    },
    {
        "code": "PARTNER",
        "name": "파트너",
        "name_en": "Partner",
        "name_zh": "合作伙伴",
        "annual_fee": 0,
        "benefits": ["협력 기관 혜택", "공동 이벤트 기획"],
        "order": 4,
    },
    {
        "code": "ADMIN",
        "name": "운영진",
        "name_en": "Administrator",
        "name_zh": "管理员",
        "annual_fee": 0,
        "benefits": ["전체 시스템 접근 권한"],
        "order": 5,
    },
]

ROLES = [
    {"code": "guest", "name": "게스트", "description": "비회원 방문자"},
    {"code": "member", "name": "회원", "description": "일반 회원"},
    {"code": "editor", "name": "에디터", "description": "콘텐츠 작성 및 편집 권한"},
    {"code": "operator", "name": "운영자", "description": "시스템 운영 권한"},
    {"code": "admin", "name": "관리자", "description": "최고 관리자 권한"},
]

# (key, resource, action, description)
PERMISSIONS = [
    # 이벤트
    ("event.read", "event", "read", "이벤트 열람"),
    ("event.create", "event", "create", "이벤트 생성"),
    ("event.update", "event", "update", "이벤트 수정"),
    ("event.delete", "event", "delete", "이벤트 삭제"),
    ("event.publish", "event", "publish", "이벤트 발행"),
    ("event.attendee.manage", "event", "manage", "참석자 관리"),

    # 뉴스
    ("news.read", "news", "read", "뉴스 열람"),
    ("news.create", "news", "create", "뉴스 작성"),
    ("news.update", "news", "update", "뉴스 수정"),
    ("news.delete", "news", "delete", "뉴스 삭제"),
    ("news.publish", "news", "publish", "뉴스 발행"),

    # 자료실
    ("resource.read", "resource", "read", "자료 열람"),
    ("resource.upload", "resource", "create", "자료 업로드"),
    ("resource.update", "resource", "update", "자료 수정"),
    ("resource.delete", "resource", "delete", "자료 삭제"),
    ("resource.publish", "resource", "publish", "자료 발행"),

    # 회원
    ("member.read", "member", "read", "회원 정보 열람"),
    ("member.create", "member", "create", "회원 등록"),
    ("member.update", "member", "update", "회원 정보 수정"),
    ("member.delete", "member", "delete", "회원 삭제"),
    ("member.manage", "member", "manage", "회원 관리"),

    # 파트너
    ("partner.read", "partner", "read", "파트너 정보 열람"),
    ("partner.manage", "partner", "manage", "파트너 관리"),

    # 문의
    ("inquiry.read", "inquiry", "read", "문의 열람"),
    ("inquiry.respond", "inquiry", "update", "문의 응답"),

    # 시스템
    ("system.dashboard", "system", "read", "대시보드 접근"),
    ("system.settings", "system", "manage", "시스템 설정"),
]

ROLE_PERMISSIONS = {
    "guest": [
        "event.read",
        "news.read",
        "partner.read",
    ],
    "member": [
        "event.read",
        "news.read",
        "resource.read",
        "member.read",
        "partner.read",
    ],
    "editor": [
        "event.*",
        "news.*",
        "resource.*",
        "member.read",
        "partner.read",
        "inquiry.read",
    ],
    "operator": [
        "event.*",
        "news.*",
        "resource.*",
        "member.*",
        "partner.*",
        "inquiry.*",
        "system.dashboard",
    ],
    "admin": ["*"],
}
