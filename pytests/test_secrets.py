#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Secrets stack: empty secrets initialized by the custom resource.
"""

import json

from troposphere.cloudformation import CustomResource

from ecs_shibboleth.secrets.secrets_template import (
    ShibbolethSecrets,
    render_secrets_template,
)


def test_initializer_custom_resource():
    template = render_secrets_template()
    initializer = template.resources["SecretsInitializer"]
    assert isinstance(initializer, CustomResource)
    assert ShibbolethSecrets.resource_type == "Custom::ShibbolethSecrets"

    content = json.loads(template.to_json())
    resource = content["Resources"]["SecretsInitializer"]
    assert resource["Type"] == "Custom::ShibbolethSecrets"
    assert resource["Properties"]["ServiceToken"] == {
        "Fn::GetAtt": ["SecretsInitializerFunction", "Arn"]
    }
    assert resource["Properties"]["SealerKeySecretArn"] == {"Ref": "SealerKeySecret"}
    assert resource["Properties"]["SealerKeyVersionCount"] == {
        "Ref": "SealerKeyVersionCount"
    }


def test_outputs_come_from_the_initializer():
    content = render_secrets_template().to_dict()
    assert set(content["Outputs"]) == {
        "SigningArn",
        "BackchannelArn",
        "EncryptionArn",
        "LDAPSettingsArn",
        "SealerKeyArn",
    }
    for name, output in content["Outputs"].items():
        assert output["Value"] == {"Fn::GetAtt": ["SecretsInitializer", name]}
    assert content["Parameters"]["LDAPReadOnlyPassword"]["NoEcho"] is True
    assert "Custom::ShibbolethSecrets" in render_secrets_template().to_yaml()
