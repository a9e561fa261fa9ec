"""
Application template form builder.

A template is a list of sections, each holding an ordered list of questions.
Every operation here takes the current section list and returns a new one;
inputs are never mutated, so a failed operation leaves the caller's data
untouched. Indices are 0-based, ``order`` values are 1-based.
"""
from __future__ import annotations

import copy
import uuid
from typing import Any, Callable, Dict, List, Optional

from core.exceptions import InvalidInput

Section = Dict[str, Any]
Question = Dict[str, Any]

QUESTION_TYPE_LABELS = {
    'text': 'Short Text',
    'textarea': 'Long Text',
    'email': 'Email',
    'phone': 'Phone Number',
    'number': 'Number',
    'date': 'Date',
    'select': 'Single Choice Dropdown',
    'multiselect': 'Multiple Choice Dropdown',
    'radio': 'Single Choice (Radio)',
    'checkbox': 'Multiple Choice (Checkbox)',
    'file': 'File Upload',
    'url': 'URL',
    'address': 'Address',
    'education': 'Education History',
    'experience': 'Work Experience',
    'reference': 'Reference Contact',
    'essay': 'Essay',
    'statement': 'Personal Statement',
    'gpa': 'GPA',
    'test_score': 'Test Score',
    'country': 'Country Selection',
}
QUESTION_TYPES = tuple(QUESTION_TYPE_LABELS)
OPTION_TYPES = ('select', 'multiselect', 'radio', 'checkbox')
PRESERVED_ON_TYPE_CHANGE = ('id', 'order', 'title', 'description', 'required', 'helpText', 'group')


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def create_default_question(order: int, qtype: str = 'text') -> Question:
    if qtype not in QUESTION_TYPES:
        raise InvalidInput(f'Unknown question type: {qtype}')
    question: Question = {
        'id': generate_id('question'),
        'type': qtype,
        'title': f'Question {order}',
        'description': '',
        'placeholder': '',
        'required': False,
        'order': order,
        'validation': [],
        'helpText': '',
        'group': '',
    }
    if qtype in OPTION_TYPES:
        question['options'] = [
            {'value': 'option1', 'label': 'Option 1'},
            {'value': 'option2', 'label': 'Option 2'},
        ]
    if qtype == 'file':
        question['fileConfig'] = {
            'allowedTypes': ['pdf', 'doc', 'docx'],
            'maxSize': 5,
            'maxFiles': 1,
            'description': 'Please upload your document',
        }
    return question


def create_default_section(order: int) -> Section:
    return {
        'id': generate_id('section'),
        'title': f'Section {order}',
        'description': '',
        'order': order,
        'questions': [create_default_question(1)],
        'isRepeatable': False,
    }


def _renumber(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**item, 'order': i + 1} for i, item in enumerate(items)]


def _section_at(sections: List[Section], index: int) -> Section:
    if not 0 <= index < len(sections):
        raise InvalidInput(f'Section {index} does not exist')
    return sections[index]


def _question_at(section: Section, index: int) -> Question:
    questions = section.get('questions') or []
    if not 0 <= index < len(questions):
        raise InvalidInput(f'Question {index} does not exist')
    return questions[index]


def _with_section(sections: List[Section], index: int, fn: Callable[[Section], Section]) -> List[Section]:
    result = copy.deepcopy(sections)
    result[index] = fn(_section_at(result, index))
    return result


def _with_question(sections: List[Section], s_index: int, q_index: int,
                   fn: Callable[[Question], Question]) -> List[Section]:
    def apply(section: Section) -> Section:
        questions = list(section.get('questions') or [])
        questions[q_index] = fn(_question_at(section, q_index))
        return {**section, 'questions': questions}
    return _with_section(sections, s_index, apply)


# ---------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------
def add_section(sections: List[Section]) -> List[Section]:
    return copy.deepcopy(sections) + [create_default_section(len(sections) + 1)]


def remove_section(sections: List[Section], index: int) -> List[Section]:
    _section_at(sections, index)
    if len(sections) <= 1:
        raise InvalidInput('Cannot remove the last section')
    result = copy.deepcopy(sections)
    del result[index]
    return _renumber(result)


def duplicate_section(sections: List[Section], index: int) -> List[Section]:
    source = copy.deepcopy(_section_at(sections, index))
    source['id'] = generate_id('section')
    source['title'] = f"{source.get('title', '')} (Copy)"
    source['order'] = len(sections) + 1
    source['questions'] = [{**q, 'id': generate_id('question')} for q in source.get('questions') or []]
    return copy.deepcopy(sections) + [source]


def reorder_sections(sections: List[Section], start: int, end: int) -> List[Section]:
    _section_at(sections, start)
    _section_at(sections, end)
    result = copy.deepcopy(sections)
    moved = result.pop(start)
    result.insert(end, moved)
    return _renumber(result)


# ---------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------
def add_question(sections: List[Section], s_index: int, qtype: str = 'text') -> List[Section]:
    def apply(section: Section) -> Section:
        questions = list(section.get('questions') or [])
        questions.append(create_default_question(len(questions) + 1, qtype))
        return {**section, 'questions': questions}
    return _with_section(sections, s_index, apply)


def remove_question(sections: List[Section], s_index: int, q_index: int) -> List[Section]:
    def apply(section: Section) -> Section:
        _question_at(section, q_index)
        questions = list(section['questions'])
        if len(questions) <= 1:
            raise InvalidInput('Cannot remove the last question')
        del questions[q_index]
        return {**section, 'questions': _renumber(questions)}
    return _with_section(sections, s_index, apply)


def duplicate_question(sections: List[Section], s_index: int, q_index: int) -> List[Section]:
    def apply(section: Section) -> Section:
        questions = list(section.get('questions') or [])
        source = copy.deepcopy(_question_at(section, q_index))
        source.update({
            'id': generate_id('question'),
            'title': f"{source.get('title', '')} (Copy)",
            'order': len(questions) + 1,
        })
        return {**section, 'questions': questions + [source]}
    return _with_section(sections, s_index, apply)


def change_question_type(sections: List[Section], s_index: int, q_index: int, new_type: str) -> List[Section]:
    def apply(question: Question) -> Question:
        replacement = create_default_question(question.get('order', q_index + 1), new_type)
        for key in PRESERVED_ON_TYPE_CHANGE:
            if key in question:
                replacement[key] = question[key]
        return replacement
    return _with_question(sections, s_index, q_index, apply)


def reorder_questions(sections: List[Section], s_index: int, start: int, end: int) -> List[Section]:
    def apply(section: Section) -> Section:
        _question_at(section, start)
        _question_at(section, end)
        questions = list(section['questions'])
        moved = questions.pop(start)
        questions.insert(end, moved)
        return {**section, 'questions': _renumber(questions)}
    return _with_section(sections, s_index, apply)


def update_question(sections: List[Section], s_index: int, q_index: int, changes: Dict[str, Any]) -> List[Section]:
    if 'type' in changes:
        raise InvalidInput('Use changeQuestionType to change a question type')
    forbidden = {'id', 'order'} & set(changes)
    if forbidden:
        raise InvalidInput(f"Cannot update {', '.join(sorted(forbidden))}")
    return _with_question(sections, s_index, q_index, lambda q: {**q, **changes})


def update_section(sections: List[Section], s_index: int, changes: Dict[str, Any]) -> List[Section]:
    allowed = {'title', 'description', 'isRepeatable', 'maxRepeats'}
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidInput(f"Cannot update {', '.join(sorted(unknown))}")
    return _with_section(sections, s_index, lambda s: {**s, **changes})


# ---------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------
def _require_options(question: Question) -> List[Dict[str, Any]]:
    if question.get('type') not in OPTION_TYPES:
        raise InvalidInput(f"Question type {question.get('type')} has no options")
    return list(question.get('options') or [])


def add_option(sections: List[Section], s_index: int, q_index: int) -> List[Section]:
    def apply(question: Question) -> Question:
        options = _require_options(question)
        n = len(options) + 1
        options.append({'value': f'option{n}', 'label': f'Option {n}', 'description': ''})
        return {**question, 'options': options}
    return _with_question(sections, s_index, q_index, apply)


def remove_option(sections: List[Section], s_index: int, q_index: int, o_index: int) -> List[Section]:
    def apply(question: Question) -> Question:
        options = _require_options(question)
        if not 0 <= o_index < len(options):
            raise InvalidInput(f'Option {o_index} does not exist')
        if len(options) <= 1:
            raise InvalidInput('Cannot remove the last option')
        del options[o_index]
        return {**question, 'options': options}
    return _with_question(sections, s_index, q_index, apply)


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------
def validate_template(title: Optional[str], sections: Any) -> List[str]:
    """Return a list of problems; an empty list means the template can be published."""
    errors: List[str] = []
    if not (title or '').strip():
        errors.append('Template title is required')
    if not isinstance(sections, list) or not sections:
        errors.append('At least one section is required')
        return errors
    for s_pos, section in enumerate(sections, start=1):
        if not isinstance(section, dict):
            errors.append(f'Section {s_pos} is malformed')
            continue
        label = f"Section {s_pos}"
        if not section.get('id'):
            errors.append(f'{label}: id is required')
        if not (section.get('title') or '').strip():
            errors.append(f'{label}: title is required')
        questions = section.get('questions')
        if not isinstance(questions, list) or not questions:
            errors.append(f'{label}: at least one question is required')
            continue
        for q_pos, question in enumerate(questions, start=1):
            q_label = f'{label}, question {q_pos}'
            if not isinstance(question, dict):
                errors.append(f'{q_label} is malformed')
                continue
            if not question.get('id'):
                errors.append(f'{q_label}: id is required')
            if question.get('type') not in QUESTION_TYPES:
                errors.append(f"{q_label}: invalid type {question.get('type')!r}")
            if not (question.get('title') or '').strip():
                errors.append(f'{q_label}: title is required')
            if question.get('type') in OPTION_TYPES and not question.get('options'):
                errors.append(f'{q_label}: at least one option is required')
    return errors


# op name -> (function, argument names in call order)
OPERATIONS: Dict[str, tuple] = {
    'addSection': (add_section, ()),
    'removeSection': (remove_section, ('sectionIndex',)),
    'duplicateSection': (duplicate_section, ('sectionIndex',)),
    'reorderSections': (reorder_sections, ('startIndex', 'endIndex')),
    'updateSection': (update_section, ('sectionIndex', 'changes')),
    'addQuestion': (add_question, ('sectionIndex', 'questionType?')),
    'removeQuestion': (remove_question, ('sectionIndex', 'questionIndex')),
    'duplicateQuestion': (duplicate_question, ('sectionIndex', 'questionIndex')),
    'changeQuestionType': (change_question_type, ('sectionIndex', 'questionIndex', 'questionType')),
    'reorderQuestions': (reorder_questions, ('sectionIndex', 'startIndex', 'endIndex')),
    'updateQuestion': (update_question, ('sectionIndex', 'questionIndex', 'changes')),
    'addOption': (add_option, ('sectionIndex', 'questionIndex')),
    'removeOption': (remove_option, ('sectionIndex', 'questionIndex', 'optionIndex')),
}


def apply_operation(sections: List[Section], op: str, args: Dict[str, Any]) -> List[Section]:
    if op not in OPERATIONS:
        raise InvalidInput(f'Unknown builder operation: {op}')
    fn, names = OPERATIONS[op]
    call_args = []
    for name in names:
        optional = name.endswith('?')
        key = name.rstrip('?')
        if key not in args:
            if optional:
                continue
            raise InvalidInput(f'{op} requires {key}')
        call_args.append(args[key])
    return fn(sections or [], *call_args)
