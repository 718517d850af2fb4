from backend.signup.validation.rules import validate
from backend.signup.validation.strength import password_strength, score_password, strength_label


def test_score_counts_independent_checks():
    assert score_password('') == 0
    assert score_password('abc') == 1
    assert score_password('abcdefgh') == 2
    assert score_password('Abcdefgh') == 3
    assert score_password('Abcdefg1') == 4
    assert score_password('Abcdef1!') == 5


def test_labels():
    assert [strength_label(s) for s in range(6)] == ['Weak', 'Weak', 'Weak', 'Fair', 'Good', 'Strong']


def test_strength_does_not_affect_validation():
    # a "Good" password still passes and a symbol-only password still fails
    assert password_strength('Abcdefg1')['label'] == 'Good'
    assert validate('password', 'Abcdefg1') == ''
    assert validate('password', '!!!!!!!!') != ''


def test_password_strength_reports_checks():
    result = password_strength('abc1')
    assert result['score'] == 2
    assert result['checks'] == {
        'length': False,
        'lowercase': True,
        'uppercase': False,
        'digit': True,
        'symbol': False,
    }


def test_non_ascii_digit_does_not_score():
    assert password_strength('Abcdefg٣')['checks']['digit'] is False
