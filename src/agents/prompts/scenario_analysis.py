"""Prompt template for scenario analysis.

Turns a numbered list of driver utterances into the flat draft schema
(category, query_*, response_*, tags). Wording, category guide and worked
examples are kept in Korean to match the product's operators and data.
"""

from src.models.common import ScenarioCategory

SYSTEM_PROMPT = (
    "당신은 자동차 내비게이션 AI 시스템의 시나리오 분석 전문가입니다. "
    "사용자의 자연스러운 발화를 분석하여 구체적이고 현실적인 AI 시나리오를 생성하세요. "
    "반드시 지정된 JSON 형식으로만 응답하세요."
)

_CATEGORY_GUIDE = {
    ScenarioCategory.ROUTE_GUIDANCE: "목적지, 길찾기, 경로 선택, 소요시간",
    ScenarioCategory.TRAFFIC_INFO: "정체, 사고, 도로상황, 소요시간 변화",
    ScenarioCategory.NEARBY_FACILITIES: "POI 검색 (주유소, 화장실, 카페, 주차장 등)",
    ScenarioCategory.PARKING_GUIDANCE: "주차장 위치, 주차 가능 여부, 입구 찾기",
    ScenarioCategory.WEATHER_ROAD: "날씨, 노면 상태, 시야, 환경적 위험요소",
    ScenarioCategory.VEHICLE_CONTROL: "차량 성능, 제한, 주행 가능성",
    ScenarioCategory.SCHEDULE_MANAGEMENT: "시간, 일정, 우선순위, 경유지",
    ScenarioCategory.EMERGENCY: "사고, 고장, 응급 상황",
}

_FIELD_GUIDE = """\
### 2. 질의 분석 (Query) - 사용자 의도 파악:
- query_context (맥락): 운전 중 상황을 구체적으로. 예) "고속도로 주행 중, 연료 부족"
- query_intent (의도): 핵심 목적을 명확히. 예) "가까운 주유소 검색"
- query_expectation (기대): 원하는 정보 형태. 예) "거리순 주유소 목록"
- query_action (행동): 시스템이 해야 할 것. 예) "POI 검색 및 경로 안내"

### 3. AI 응답 생성 (Response) - 시스템의 구체적 답변:
- response_trigger (기준점): 언제/어디서 정보를 제공하는지. 예) "현재 위치 반경 5km 내"
- response_phenomenon (현상): 지금 무슨 일이 일어나고 있는지. 예) "3개 주유소 이용 가능"
- response_impact (영향): 운전자에게 미치는 실질적 영향. 예) "가장 가까운 곳 2km, 5분 소요"
- response_offer (제안): 구체적인 해결책이나 다음 행동. 예) "○○ 주유소로 안내할까요?\""""

_EXAMPLES = """\
### 4. 실제 예시:
발화: "지금 비 많이 와? 미끄럽지 않을까?"
- category: 날씨/도로 / context: 주행 중, 기상 악화 감지 / intent: 도로 안전성 확인
- expectation: 노면 상태 및 주행 주의사항 / action: 날씨/노면 정보 제공 및 안전 알림
- trigger: 현재 주행 중인 도로 구간 / phenomenon: 강우량 시간당 20mm, 노면 젖음
- impact: 제동거리 1.5배 증가, 미끄럼 위험 / offer: 속도 줄이고 차간거리 확보 권장
- tags: [날씨, 안전운전, 노면상태]

발화: "앞에 왜 이렇게 막혀?"
- category: 교통정보 / context: 주행 중, 예상치 못한 정체 발생 / intent: 정체 원인 및 해소 시간 파악
- expectation: 정체 원인 및 예상 소요시간 / action: 교통정보 분석 및 대안 경로 제시
- trigger: 현재 위치 기준 전방 2km / phenomenon: 3차로 추돌사고로 1차로만 통행
- impact: 평소 대비 15분 지연 예상 / offer: 우측 국도 경유 시 5분 단축 가능
- tags: [교통정체, 사고, 대안경로]

발화: "아이들 화장실 급한데 가까운 곳 어디야?"
- category: 주변시설 / context: 주행 중, 긴급 화장실 필요 / intent: 가장 가까운 화장실 찾기
- expectation: 거리순 화장실 위치 정보 / action: 화장실 있는 POI 검색 및 안내
- trigger: 현재 위치 반경 3km 이내 / phenomenon: 2개 휴게소, 1개 주유소 이용 가능
- impact: 가장 가까운 곳 1.5km, 3분 소요 / offer: ○○ 휴게소 화장실로 안내할까요?
- tags: [화장실, 긴급, 휴게시설]"""

_RULES = """\
## 주의사항:
- 각 필드는 구체적이고 실용적으로 작성
- 한국 도로 환경과 운전 문화 반영
- 모호한 표현 지양, 수치와 거리 포함
- AI 응답은 친근하고 자연스러운 말투로
- 태그는 2-4개, 검색 가능한 키워드 중심
- 발화 하나당 시나리오 하나, 입력 순서 유지"""

_OUTPUT_FORMAT = """\
## 출력 형식 (JSON):
{"scenarios": [{"category": "...", "query_raw": "...", "query_context": "...",
"query_intent": "...", "query_expectation": "...", "query_action": "...",
"response_trigger": "...", "response_phenomenon": "...", "response_impact": "...",
"response_offer": "...", "tags": ["...", "..."]}]}"""


def build_prompt(candidates: list[str]) -> str:
    """Build the user prompt for a batch of candidate utterances."""
    lines = ["## 분석할 사용자 발화들:"]
    lines.extend(f"{i}. {q}" for i, q in enumerate(candidates, start=1))
    lines.append("")
    lines.append("## 분석 가이드라인:")
    lines.append("")
    lines.append("### 1. 카테고리 분류 기준 (category는 아래 값 중 하나):")
    for category, guide in _CATEGORY_GUIDE.items():
        lines.append(f"- {category.value}: {guide}")
    lines.append("")
    lines.append(_FIELD_GUIDE)
    lines.append("")
    lines.append(_EXAMPLES)
    lines.append("")
    lines.append(_RULES)
    lines.append("")
    lines.append(_OUTPUT_FORMAT)
    return "\n".join(lines)
