"""
keywords.py - Bilingual keyword tables

This module provides:
- INTENT_KEYWORDS: per-intent Korean/English keyword lists
- CATEGORY_KEYWORDS: per-category Korean/English keyword lists
- SIGNAL_KEYWORDS: conversational signal lists used by detect_signals()

Table order matters: classifier arg-max ties resolve to the earlier entry.
Korean keywords are matched as substrings, English ones on word boundaries.
"""

from types import MappingProxyType
from typing import List, Mapping

from promptforge.core.models import Intent, TaskCategory


def _table(ko: List[str], en: List[str]) -> Mapping[str, tuple]:
    return MappingProxyType({"ko": tuple(ko), "en": tuple(en)})


# ── intents ──────────────────────────────────────────────────────────────────
INTENT_KEYWORDS: Mapping[Intent, Mapping[str, tuple]] = MappingProxyType({
    Intent.COMMAND: _table(
        ["해줘", "해주세요", "만들어", "작성해", "생성해", "추가해", "삭제해",
         "수정해", "변경해", "바꿔", "고쳐", "실행해"],
        ["create", "make", "build", "write", "add", "remove", "delete", "update",
         "modify", "change", "fix", "run", "execute", "implement"],
    ),
    Intent.QUESTION: _table(
        ["어떻게", "왜", "뭐", "무엇", "언제", "어디", "누가", "할 수 있나",
         "가능한가", "어떤가요", "인가요"],
        ["how", "why", "what", "when", "where", "who", "which", "can", "could",
         "would", "is it possible", "do you know"],
    ),
    Intent.INSTRUCTION: _table(
        ["먼저", "다음", "그리고", "이후", "나중에", "순서대로", "단계별로",
         "과정", "절차", "방법"],
        ["first", "then", "next", "after", "finally", "step", "process",
         "procedure", "method", "approach", "way to"],
    ),
    Intent.FEEDBACK: _table(
        ["감사", "고마워", "완벽", "좋아", "아니", "틀렸", "잘못", "안돼",
         "에러", "문제", "대박", "최고"],
        ["thank", "thanks", "perfect", "great", "awesome", "no", "wrong",
         "incorrect", "error", "issue", "problem", "excellent"],
    ),
    Intent.CONTEXT: _table(
        ["현재", "지금", "상황", "환경", "사용 중", "프로젝트", "목표",
         "원하는", "필요한", "조건"],
        ["currently", "right now", "situation", "environment", "using",
         "project", "goal", "need", "want", "require", "condition"],
    ),
    Intent.CLARIFICATION: _table(
        ["무슨 뜻", "이해가 안", "다시 설명", "예를 들어", "예시", "구체적으로",
         "자세히", "명확하게"],
        ["what do you mean", "don't understand", "explain again", "for example",
         "example", "specifically", "more detail", "clarify", "elaborate"],
    ),
})


# ── task categories ──────────────────────────────────────────────────────────
CATEGORY_KEYWORDS: Mapping[TaskCategory, Mapping[str, tuple]] = MappingProxyType({
    TaskCategory.CODE_GENERATION: _table(
        ["만들어", "생성", "구현", "작성", "새로운", "추가"],
        ["create", "generate", "implement", "write", "new", "add", "build"],
    ),
    TaskCategory.CODE_REVIEW: _table(
        ["리뷰", "검토", "확인", "봐줘", "어떤가", "괜찮"],
        ["review", "check", "look at", "examine", "assess", "evaluate"],
    ),
    TaskCategory.BUG_FIX: _table(
        ["버그", "오류", "에러", "문제", "안돼", "안됨", "수정", "고쳐"],
        ["bug", "error", "issue", "problem", "not working", "fix", "debug"],
    ),
    TaskCategory.REFACTORING: _table(
        ["리팩토링", "리팩터", "개선", "정리", "최적화", "구조"],
        ["refactor", "improve", "clean", "optimize", "restructure", "simplify"],
    ),
    TaskCategory.EXPLANATION: _table(
        ["설명", "알려줘", "뭐야", "이해", "의미", "작동", "원리"],
        ["explain", "tell me", "what is", "understand", "meaning", "how does", "work"],
    ),
    TaskCategory.DOCUMENTATION: _table(
        ["문서", "주석", "설명", "README", "가이드", "매뉴얼"],
        ["document", "comment", "readme", "guide", "manual", "docs", "jsdoc"],
    ),
    TaskCategory.TESTING: _table(
        ["테스트", "검증", "단위", "통합", "커버리지", "jest", "vitest"],
        ["test", "spec", "unit", "integration", "coverage", "jest", "vitest", "e2e"],
    ),
    TaskCategory.ARCHITECTURE: _table(
        ["설계", "아키텍처", "구조", "패턴", "디자인", "시스템"],
        ["architecture", "design", "structure", "pattern", "system", "schema"],
    ),
    TaskCategory.DEPLOYMENT: _table(
        ["배포", "빌드", "도커", "CI", "CD", "서버", "호스팅"],
        ["deploy", "build", "docker", "ci", "cd", "server", "hosting", "kubernetes"],
    ),
    TaskCategory.DATA_ANALYSIS: _table(
        ["데이터", "분석", "쿼리", "SQL", "통계", "그래프"],
        ["data", "analysis", "query", "sql", "statistics", "chart", "graph"],
    ),
})


# ── conversational signals ───────────────────────────────────────────────────
SIGNAL_KEYWORDS: Mapping[str, Mapping[str, tuple]] = MappingProxyType({
    "positive": _table(
        ["감사", "고마워", "고맙", "완벽", "훌륭", "좋아", "좋네", "잘했", "대박",
         "멋져", "최고", "정확", "딱이야", "바로 이거", "원하던", "해결됐",
         "작동해", "동작해", "성공", "완료", "ㄱㅅ", "ㄳ", "굿"],
        ["thank", "thanks", "perfect", "excellent", "great", "awesome", "amazing",
         "wonderful", "exactly", "works", "working", "solved", "fixed", "done",
         "nice", "good job", "well done", "brilliant", "love it", "nailed it",
         "spot on", "helpful", "appreciate"],
    ),
    "negative": _table(
        ["아니", "틀렸", "잘못", "다시", "안돼", "안됨", "실패", "에러", "오류",
         "버그", "문제", "이상해", "왜 이래", "뭐야", "짜증", "답답", "이해 못",
         "모르겠", "헷갈", "복잡", "어려워"],
        ["no", "wrong", "incorrect", "error", "bug", "issue", "problem", "fail",
         "failed", "broken", "not working", "doesn't work", "don't work", "again",
         "retry", "redo", "fix this", "try again", "confused", "frustrat",
         "annoying", "terrible", "useless", "waste"],
    ),
    "retry": _table(
        ["다시 해", "다시 시도", "한번 더", "다시 만들", "다시 작성", "수정해",
         "고쳐", "바꿔", "변경해", "다르게", "다른 방법"],
        ["try again", "redo", "retry", "again please", "one more time",
         "do it again", "start over", "different approach", "another way",
         "change this", "modify", "fix this", "correct this"],
    ),
    "completion": _table(
        ["완료", "끝", "다 됐", "마무리", "완성", "배포", "커밋", "푸시", "머지",
         "릴리즈", "종료", "마침"],
        ["done", "complete", "finished", "deployed", "committed", "pushed",
         "merged", "released", "shipped", "live", "end", "wrap up"],
    ),
    "question": _table(
        ["어떻게", "왜", "뭐", "무엇", "언제", "어디", "누가", "얼마나",
         "할 수 있", "가능해", "되나요", "인가요", "일까", "는지"],
        ["how", "why", "what", "when", "where", "who", "which", "can you",
         "could you", "would you", "is it possible", "do you know", "help me",
         "explain", "tell me", "show me"],
    ),
    "command": _table(
        ["해줘", "만들어", "작성해", "생성해", "추가해", "삭제해", "수정해",
         "변경해", "실행해", "테스트해", "빌드해", "배포해", "설치해"],
        ["create", "make", "build", "write", "add", "remove", "delete", "update",
         "modify", "change", "run", "execute", "test", "deploy", "install",
         "implement", "fix", "refactor"],
    ),
    "context": _table(
        ["현재", "지금", "상황", "배경", "목표", "원하는", "필요한", "요구사항",
         "스펙", "조건", "제약", "환경"],
        ["currently", "right now", "situation", "background", "goal", "objective",
         "requirement", "spec", "constraint", "condition", "environment",
         "context", "scenario", "use case"],
    ),
})


def all_keywords(table: Mapping[str, tuple]) -> List[str]:
    """Korean then English keywords of one table entry."""
    return list(table["ko"]) + list(table["en"])

