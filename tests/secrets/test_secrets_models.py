from appplatform._core.secrets.models import GROUP_VERSION, Keeper, KeeperAWS, \
                                             KeeperAWSAssumeRole, KeeperSpec, ObjectMetadata, \
                                             SecureValue, SecureValueSpec, SecureValueStatus


def test_group_version():
    assert GROUP_VERSION == 'secret.grafana.app/v1beta1'


def test_empty_keeper_keeps_the_required_fields():
    assert Keeper().as_dict() == {
        'metadata': {'name': '', 'namespace': ''},
        'spec': {},
    }


def test_empty_secure_value_keeps_the_required_fields():
    assert SecureValue().as_dict() == {
        'metadata': {'name': '', 'namespace': ''},
        'spec': {},
        'status': {'keeper': ''},
    }


def test_full_keeper_as_dict():
    keeper = Keeper(
        api_version=GROUP_VERSION,
        kind='Keeper',
        metadata=ObjectMetadata(name='aws1', namespace='org-5'),
        spec=KeeperSpec(
            description='AWS keeper',
            type='aws',
            aws=KeeperAWS(
                region='eu-west-1',
                assume_role=KeeperAWSAssumeRole(assume_role_arn='arn:aws:iam::1:role/x', external_id='ext'),
            ),
        ),
    )
    assert keeper.as_dict() == {
        'apiVersion': 'secret.grafana.app/v1beta1',
        'kind': 'Keeper',
        'metadata': {'name': 'aws1', 'namespace': 'org-5'},
        'spec': {
            'description': 'AWS keeper',
            'type': 'aws',
            'aws': {
                'region': 'eu-west-1',
                'assumeRole': {'assumeRoleArn': 'arn:aws:iam::1:role/x', 'externalID': 'ext'},
            },
        },
    }


def test_aws_region_and_role_fields_are_always_present():
    assert KeeperAWS().as_dict() == {'region': ''}
    assert KeeperAWSAssumeRole().as_dict() == {'assumeRoleArn': '', 'externalID': ''}


def test_keeper_from_dict():
    keeper = Keeper.from_dict({
        'apiVersion': 'secret.grafana.app/v1beta1',
        'kind': 'Keeper',
        'metadata': {'name': 'aws1', 'namespace': 'org-5', 'uid': 'ignored'},
        'spec': {'aws': {'region': 'eu-west-1', 'assumeRole': {'assumeRoleArn': 'arn'}}},
    })
    assert keeper.metadata == ObjectMetadata(name='aws1', namespace='org-5')
    assert keeper.spec.aws.region == 'eu-west-1'
    assert keeper.spec.aws.assume_role == KeeperAWSAssumeRole(assume_role_arn='arn', external_id='')
    assert keeper.spec.description == ''


def test_keeper_from_sparse_dict():
    keeper = Keeper.from_dict({})
    assert keeper == Keeper()
    assert keeper.spec.aws is None


def test_secure_value_spec_omits_empty_fields():
    assert SecureValueSpec(ref='r').as_dict() == {'ref': 'r'}
    assert SecureValueSpec(value='v', decrypters=['a', 'b']).as_dict() == {'value': 'v', 'decrypters': ['a', 'b']}


def test_secure_value_from_dict():
    value = SecureValue.from_dict({
        'metadata': {'name': 'sv1', 'namespace': 'org-5'},
        'spec': {'description': 'db', 'decrypters': ['app']},
        'status': {'keeper': 'aws1'},
    })
    assert value.spec == SecureValueSpec(description='db', decrypters=['app'])
    assert value.status == SecureValueStatus(keeper='aws1')


def test_decrypters_are_copied():
    decrypters = ['app']
    spec = SecureValueSpec(decrypters=decrypters)
    spec.as_dict()['decrypters'].append('other')
    assert decrypters == ['app']
